# tests/test_codec.py
import pytest

from bgping.prober.codec import (
    ICMP_ECHO_REPLY, ICMP_ECHO_REQUEST, ICMPParseError,
    checksum, encode_echo, parse_message,
)


def test_encode_known_header():
    """Echo request id=1 seq=1 with no payload."""
    assert encode_echo(1, 1) == b"\x08\x00\xf7\xfd\x00\x01\x00\x01"


def test_encoded_packet_checksums_to_zero():
    pkt = encode_echo(4242, 17, b"12345677890")
    assert checksum(pkt) == 0


def test_odd_length_payload_is_padded_for_checksum():
    pkt = encode_echo(1, 1, b"abc")
    assert len(pkt) == 11
    assert checksum(pkt) == 0


def test_sequence_wraps_on_the_wire():
    msg = parse_message(encode_echo(1, 65537))
    assert msg.sequence == 1


def test_identifier_out_of_range():
    with pytest.raises(ValueError):
        encode_echo(70000, 1)


def test_parse_reply_with_ip_header():
    body = encode_echo(9, 3, b"hi", icmp_type=ICMP_ECHO_REPLY)
    ip = bytes([0x45, 0, 0, 20 + len(body)]) + bytes(16)
    msg = parse_message(ip + body)
    assert msg.is_echo_reply
    assert (msg.identifier, msg.sequence, msg.data) == (9, 3, b"hi")


def test_parse_request_is_not_a_reply():
    msg = parse_message(encode_echo(9, 3))
    assert msg.type == ICMP_ECHO_REQUEST
    assert not msg.is_echo_reply


@pytest.mark.parametrize("data", [
    b"",
    b"\x00\x00\x00",
    bytes([0x46]) + bytes(10),          # header claims 24 bytes
    bytes([0x45]) + bytes(19) + b"\x00",  # ip header, truncated icmp
])
def test_parse_rejects_short_packets(data):
    with pytest.raises(ICMPParseError):
        parse_message(data)
