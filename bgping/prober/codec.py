# bgping/prober/codec.py
import struct
from dataclasses import dataclass

ICMP_ECHO_REPLY = 0
ICMP_ECHO_REQUEST = 8

_HEADER = struct.Struct("!BBHHH")


class ICMPParseError(ValueError):
    pass


@dataclass(frozen=True)
class IcmpMessage:
    type: int
    code: int
    checksum: int
    identifier: int
    sequence: int
    data: bytes

    @property
    def is_echo_reply(self) -> bool:
        return self.type == ICMP_ECHO_REPLY


def checksum(data: bytes) -> int:
    """Internet checksum (RFC 1071) over the ICMP header and payload."""
    if len(data) % 2:
        data += b"\x00"

    total = 0
    for i in range(0, len(data), 2):
        total += (data[i] << 8) + data[i + 1]

    total = (total >> 16) + (total & 0xFFFF)
    total += total >> 16
    return (~total) & 0xFFFF


def encode_echo(identifier: int, sequence: int, payload: bytes = b"",
                icmp_type: int = ICMP_ECHO_REQUEST) -> bytes:
    """
    Build one ICMP echo packet. Sequence is truncated to 16 bits the way
    it goes on the wire; identifier must already fit.
    """
    try:
        header = _HEADER.pack(icmp_type, 0, 0, identifier, sequence & 0xFFFF)
        csum = checksum(header + payload)
        header = _HEADER.pack(icmp_type, 0, csum, identifier, sequence & 0xFFFF)
    except struct.error as e:
        raise ValueError(f"cannot encode echo id={identifier} seq={sequence}: {e}") from e
    return header + payload


def strip_ip_header(data: bytes) -> bytes:
    # raw IPv4 sockets hand back the IP header; assigned ICMP types are all below 0x40
    if data and data[0] >> 4 == 4:
        ihl = (data[0] & 0x0F) * 4
        if ihl < 20 or len(data) < ihl:
            raise ICMPParseError(f"truncated IPv4 header ({len(data)} bytes)")
        return data[ihl:]
    return data


def parse_message(data: bytes) -> IcmpMessage:
    body = strip_ip_header(data)
    if len(body) < _HEADER.size:
        raise ICMPParseError(f"message too short ({len(body)} bytes)")
    icmp_type, code, csum, ident, seq = _HEADER.unpack_from(body)
    return IcmpMessage(icmp_type, code, csum, ident, seq, bytes(body[_HEADER.size:]))
