from dataclasses import dataclass
from typing import Literal, Optional

EventKind = Literal["outage_detected", "outage_cleared"]

@dataclass(frozen=True)
class EchoRequest:
    identifier: int
    sequence: int
    payload: bytes = b""

@dataclass(frozen=True)
class EchoReply:
    identifier: int
    sequence: int
    source: Optional[str] = None
