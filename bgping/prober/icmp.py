# bgping/prober/icmp.py
import logging
import select
import socket
import threading
from typing import Optional

from bgping.prober.base import (
    Packet, RecvError, SendError, Transport, TransportSetupError,
)
from bgping.prober.codec import encode_echo
from bgping.schemas import EchoRequest

logger = logging.getLogger(__name__)


class IcmpSocketTransport(Transport):
    """
    One raw IPv4 ICMP socket shared by every probe. Any thread may send;
    only the receiver thread should call receive(). Needs root or
    CAP_NET_RAW.
    """

    def __init__(self,
                 recv_buffer: int = 65507,
                 poll_interval_s: float = 0.5,
                 sock: Optional[socket.socket] = None):
        self.recv_buffer = recv_buffer
        self.poll_interval_s = poll_interval_s
        self._closed = threading.Event()
        if sock is not None:
            self.sock = sock
            return
        try:
            self.sock = socket.socket(socket.AF_INET, socket.SOCK_RAW, socket.IPPROTO_ICMP)
        except OSError as e:
            raise TransportSetupError(f"failed to listen for icmp packets with: {e}") from e
        logger.debug("opened raw icmp socket fd=%s", self.sock.fileno())

    def send(self, target: str, request: EchoRequest) -> None:
        try:
            data = encode_echo(request.identifier, request.sequence, request.payload)
        except ValueError as e:
            raise SendError(f"failed to marshal icmp packet to: {target} with: {e}") from e
        try:
            self.sock.sendto(data, (target, 0))
        except OSError as e:
            raise SendError(str(e)) from e

    def receive(self) -> Optional[Packet]:
        if self._closed.is_set():
            raise RecvError("socket closed")
        try:
            ready, _, _ = select.select([self.sock], [], [], self.poll_interval_s)
            if not ready:
                return None
            data, addr = self.sock.recvfrom(self.recv_buffer)
        except (OSError, ValueError) as e:
            # ValueError: select() on a socket closed underneath us
            raise RecvError(str(e)) from e
        return data, addr[0]

    def close(self) -> None:
        if not self._closed.is_set():
            self._closed.set()
            self.sock.close()
