# bgping/prober/base.py
from abc import ABC, abstractmethod
from typing import Optional, Tuple

from bgping.schemas import EchoRequest

Packet = Tuple[bytes, str]   # (raw bytes, source address)


class TransportError(Exception):
    pass

class TransportSetupError(TransportError):
    pass

class SendError(TransportError):
    pass

class RecvError(TransportError):
    pass


class Transport(ABC):
    @abstractmethod
    def send(self, target: str, request: EchoRequest) -> None:
        """Encode request and write it toward target. Raises SendError."""
        raise NotImplementedError

    @abstractmethod
    def receive(self) -> Optional[Packet]:
        """
        Next inbound packet, or None when nothing arrived within the poll
        interval. Raises RecvError on socket failure.
        """
        raise NotImplementedError

    def close(self) -> None:
        pass
