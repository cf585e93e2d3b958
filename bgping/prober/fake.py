# bgping/prober/fake.py
import queue
import threading
from typing import Iterable, Optional

from bgping.prober.base import Packet, RecvError, SendError, Transport
from bgping.prober.codec import ICMP_ECHO_REPLY, encode_echo
from bgping.schemas import EchoRequest


class FakeTransport(Transport):
    """
    In-memory stand-in for the raw socket.

    reachable: targets that answer every echo request immediately.
    Anything else stays silent. Packets can also be pushed by hand with
    inject(), and sends can be made to fail with fail_sends.
    """
    def __init__(self, reachable: Optional[Iterable[str]] = None,
                 poll_interval_s: float = 0.01):
        self.reachable = set(reachable or ())
        self.poll_interval_s = poll_interval_s
        self.fail_sends = False
        self.sent = []          # (target, EchoRequest) in send order
        self._inbound = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False

    def set_reachable(self, target: str, up: bool = True) -> None:
        with self._lock:
            if up:
                self.reachable.add(target)
            else:
                self.reachable.discard(target)

    def inject(self, data: bytes, source: str = "0.0.0.0") -> None:
        self._inbound.put((data, source))

    def inject_reply(self, identifier: int, sequence: int, source: str = "0.0.0.0") -> None:
        self.inject(encode_echo(identifier, sequence, b"", icmp_type=ICMP_ECHO_REPLY), source)

    def send(self, target: str, request: EchoRequest) -> None:
        if self.fail_sends:
            raise SendError("network is unreachable")
        with self._lock:
            self.sent.append((target, request))
            up = target in self.reachable
        if up:
            self.inject_reply(request.identifier, request.sequence, target)

    def receive(self) -> Optional[Packet]:
        if self._closed:
            raise RecvError("socket closed")
        try:
            return self._inbound.get(timeout=self.poll_interval_s)
        except queue.Empty:
            return None

    def close(self) -> None:
        self._closed = True

    def sends_to(self, target: str):
        with self._lock:
            return [req for t, req in self.sent if t == target]
