# bgping/engine/registry.py
import random
from types import MappingProxyType
from typing import Iterable, Iterator, List, Optional, Tuple

from bgping.engine.probe import Probe
from bgping.schemas import EchoReply

MAX_IDENTIFIER = 65535   # identifiers live in [0, 65535)


def assign_identifiers(targets: Iterable[str],
                       rng: Optional[random.Random] = None) -> List[Tuple[int, str]]:
    """
    Sequential identifiers starting at 1. A lone target may instead draw
    one at random when rng is given.
    """
    targets = list(targets)
    if not targets:
        raise ValueError("no targets to monitor")
    if len(targets) == 1 and rng is not None:
        return [(rng.randrange(0, MAX_IDENTIFIER), targets[0])]
    if len(targets) >= MAX_IDENTIFIER:
        raise ValueError(f"too many targets ({len(targets)}), at most {MAX_IDENTIFIER - 1}")
    return [(i + 1, t) for i, t in enumerate(targets)]


class Registry:
    """identifier -> Probe. Frozen once built; safe to read from any thread."""

    def __init__(self, probes: Iterable[Probe]):
        table = {}
        for p in probes:
            if not 0 <= p.identifier < MAX_IDENTIFIER:
                raise ValueError(f"identifier {p.identifier} out of range")
            if p.identifier in table:
                raise ValueError(f"duplicate identifier {p.identifier} "
                                 f"({table[p.identifier].target}, {p.target})")
            table[p.identifier] = p
        self._table = MappingProxyType(table)

    def lookup(self, identifier: int) -> Optional[Probe]:
        return self._table.get(identifier)

    def route(self, reply: EchoReply) -> bool:
        probe = self.lookup(reply.identifier)
        if probe is None:
            return False
        probe.deliver(reply)
        return True

    def targets(self) -> List[str]:
        return [p.target for p in self._table.values()]

    def __iter__(self) -> Iterator[Probe]:
        return iter(self._table.values())

    def __len__(self) -> int:
        return len(self._table)
