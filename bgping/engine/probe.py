# bgping/engine/probe.py
import logging
import queue
import threading
import time
from typing import Optional

from bgping.config import Settings
from bgping.engine.rules import on_reply, on_timeout, reply_matches
from bgping.engine.state import ProbeState
from bgping.prober.base import SendError, Transport
from bgping.schemas import EchoReply, EchoRequest
from bgping.sink import Recorder

logger = logging.getLogger(__name__)

MESSAGES = {
    "outage_detected": "Probe: Connectivity outage detected for: {target}",
    "outage_cleared": "Probe: Connectivity outage cleared for: {target}",
}


class Probe:
    """
    Liveness loop for one target. Sends one echo at a time and waits for
    the receiver to hand back a matching reply through inbox.
    """

    def __init__(self, state: ProbeState, transport: Transport,
                 recorder: Recorder, settings: Settings):
        self.state = state
        self.transport = transport
        self.recorder = recorder
        self.s = settings
        self.inbox: "queue.Queue[EchoReply]" = queue.Queue()

    @property
    def identifier(self) -> int:
        return self.state.identifier

    @property
    def target(self) -> str:
        return self.state.target

    def deliver(self, reply: EchoReply) -> None:
        # never blocks; the receiver must not wait on a slow probe
        self.inbox.put_nowait(reply)

    def run(self, stop: threading.Event) -> None:
        while not stop.is_set():
            if self.step(stop):
                stop.wait(self.s.probe_interval_s)

    def step(self, stop: Optional[threading.Event] = None) -> bool:
        """
        One send/wait cycle. Returns True when the outstanding request was
        answered (sequence advanced), False on timeout.

        If stop is set by the time the wait ends, the outcome is discarded:
        no state change and nothing recorded.
        """
        st = self.state
        request = EchoRequest(st.identifier, st.wire_sequence, self.s.payload)
        try:
            self.transport.send(st.target, request)
            st.sent += 1
        except SendError as e:
            st.send_failures += 1
            self.recorder.event(f"Probe: failed to send a packet to: {st.target} {e}")

        reply = self._await_reply(self.s.reply_timeout_s)
        if stop is not None and stop.is_set():
            logger.debug("probe %s (%s): stopping, outcome discarded", st.identifier, st.target)
            return False
        if reply is None:
            kind = on_timeout(st)
            resolved = False
        else:
            kind = on_reply(st)
            resolved = True

        if kind is not None:
            self.recorder.event(MESSAGES[kind].format(target=st.target))
        return resolved

    def _await_reply(self, timeout: float) -> Optional[EchoReply]:
        deadline = time.monotonic() + timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            try:
                reply = self.inbox.get(timeout=remaining)
            except queue.Empty:
                return None
            if reply_matches(reply, self.state, self.s.match_sequence):
                return reply
            logger.debug("probe %s (%s): dropping stale reply seq=%s, waiting for seq=%s",
                         self.identifier, self.target, reply.sequence, self.state.wire_sequence)
