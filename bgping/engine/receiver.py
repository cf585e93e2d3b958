# bgping/engine/receiver.py
import logging
import threading
from typing import Optional

from bgping.engine.registry import Registry
from bgping.prober.base import RecvError, Transport
from bgping.prober.codec import ICMPParseError, parse_message
from bgping.schemas import EchoReply
from bgping.sink import Recorder

logger = logging.getLogger(__name__)


class Receiver:
    """
    Sole reader of the shared socket. Parses every inbound packet and
    hands echo replies to the probe registered under their identifier.

    source_filter narrows matching to one address, for deployments that
    watch a single target.
    """

    def __init__(self, transport: Transport, registry: Registry,
                 recorder: Recorder, source_filter: Optional[str] = None,
                 retry_delay_s: float = 0.5):
        self.transport = transport
        self.registry = registry
        self.recorder = recorder
        self.source_filter = source_filter
        self.retry_delay_s = retry_delay_s
        self.routed = 0
        self.dropped = 0

    def run(self, stop: threading.Event) -> None:
        while not stop.is_set():
            try:
                packet = self.transport.receive()
            except RecvError as e:
                if stop.is_set():
                    break
                self.recorder.event(f"Receiver: failed to read icmp packet: {e}")
                # a dead socket fails every read; pace the log
                stop.wait(self.retry_delay_s)
                continue
            if packet is None:
                continue
            self.dispatch(*packet)

    def dispatch(self, data: bytes, source: str) -> bool:
        """Route one raw packet. Returns True if a probe received it."""
        if self.source_filter is not None and source != self.source_filter:
            self.dropped += 1
            return False
        try:
            msg = parse_message(data)
        except ICMPParseError as e:
            self.recorder.event(f"Receiver: failed to parse icmp packet: {e}")
            return False

        if not msg.is_echo_reply:
            self.dropped += 1
            return False

        reply = EchoReply(msg.identifier, msg.sequence, source)
        if not self.registry.route(reply):
            logger.debug("no probe for icmp id=%s from %s", msg.identifier, source)
            self.dropped += 1
            return False
        self.routed += 1
        return True
