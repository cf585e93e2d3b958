# bgping/engine/state.py
from dataclasses import dataclass

@dataclass
class ProbeState:
    identifier: int
    target: str
    sequence: int = 1
    outage: bool = False
    # counters, logged at DEBUG by Monitor.log_stats()
    sent: int = 0
    replies: int = 0
    timeouts: int = 0
    send_failures: int = 0

    @property
    def wire_sequence(self) -> int:
        return self.sequence & 0xFFFF
