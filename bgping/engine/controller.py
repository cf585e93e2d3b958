# bgping/engine/controller.py
import logging
import random
import threading
from typing import Callable, Iterable, List, Optional

from bgping.config import Settings
from bgping.engine.probe import Probe
from bgping.engine.receiver import Receiver
from bgping.engine.registry import Registry, assign_identifiers
from bgping.engine.state import ProbeState
from bgping.prober.base import Transport
from bgping.sink import Recorder

logger = logging.getLogger(__name__)


class Monitor:
    def __init__(self, transport: Transport, recorder: Recorder, settings: Settings,
                 targets: Iterable[str], rng: Optional[random.Random] = None):
        self.transport = transport
        self.recorder = recorder
        self.s = settings

        targets = list(targets)
        if rng is None and settings.random_single_id and len(targets) == 1:
            rng = random.Random()
        ids = assign_identifiers(targets, rng=rng)
        self.registry = Registry(
            Probe(ProbeState(identifier=i, target=t), transport, recorder, settings)
            for i, t in ids
        )
        self.receiver = Receiver(
            transport, self.registry, recorder,
            source_filter=targets[0] if len(targets) == 1 else None,
            retry_delay_s=settings.poll_interval_s,
        )

        self.stop_event = threading.Event()
        self.fatal: Optional[BaseException] = None
        self._threads: List[threading.Thread] = []

    def start(self) -> None:
        self.recorder.event("Starting receiver and probes")
        logger.debug("monitoring %s", ", ".join(self.registry.targets()))
        self._spawn("receiver", self.receiver.run)
        for probe in self.registry:
            self._spawn(f"probe-{probe.identifier}-{probe.target}", probe.run)

    def _spawn(self, name: str, fn: Callable[[threading.Event], None]) -> None:
        t = threading.Thread(target=self._guard, args=(fn,), name=name, daemon=True)
        self._threads.append(t)
        t.start()

    def _guard(self, fn: Callable[[threading.Event], None]) -> None:
        # any task dying takes the whole monitor down; run_forever() re-raises
        try:
            fn(self.stop_event)
        except Exception as e:
            logger.exception("%s died", threading.current_thread().name)
            if self.fatal is None:
                self.fatal = e
            self.stop_event.set()

    def stop(self) -> None:
        self.stop_event.set()

    def join(self, timeout: Optional[float] = None) -> None:
        for t in self._threads:
            t.join(timeout)

    def log_stats(self) -> None:
        for p in self.registry:
            st = p.state
            logger.debug("probe %s (%s): seq=%s outage=%s sent=%s replies=%s timeouts=%s send_failures=%s",
                         st.identifier, st.target, st.sequence, st.outage,
                         st.sent, st.replies, st.timeouts, st.send_failures)
        logger.debug("receiver: routed=%s dropped=%s", self.receiver.routed, self.receiver.dropped)

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def run_forever(self, poll_s: float = 0.5) -> None:
        """
        Start every task and block until stop() is called or a task fails.
        A failed task's exception is raised here once all tasks are down.
        """
        self.start()
        while not self.stop_event.wait(poll_s):
            pass
        self.join()
        self.log_stats()
        if self.fatal is not None:
            raise self.fatal
