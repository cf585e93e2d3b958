# tools/echo_once.py
# Usage: sudo python3 -m tools.echo_once 8.8.8.8
# Sends a single echo over the raw socket and waits for the reply; handy for
# checking raw-socket privileges before starting bg-ping.
import json
import os
import sys
import time

from bgping.config import Settings
from bgping.prober.base import SendError, TransportSetupError
from bgping.prober.codec import ICMPParseError, parse_message
from bgping.prober.icmp import IcmpSocketTransport
from bgping.schemas import EchoRequest


def echo_once(target: str, settings: Settings) -> dict:
    transport = IcmpSocketTransport(recv_buffer=settings.recv_buffer,
                                    poll_interval_s=settings.poll_interval_s)
    ident = os.getpid() & 0xFFFF
    result = {"target": target, "identifier": ident, "sequence": 1,
              "status": "timeout", "rtt_ms": None, "error": None}
    try:
        start = time.monotonic()
        transport.send(target, EchoRequest(ident, 1, settings.payload))
        while time.monotonic() - start < settings.reply_timeout_s:
            packet = transport.receive()
            if packet is None:
                continue
            data, source = packet
            try:
                msg = parse_message(data)
            except ICMPParseError:
                continue
            if msg.is_echo_reply and msg.identifier == ident and msg.sequence == 1:
                result.update(status="reply", source=source,
                              rtt_ms=round((time.monotonic() - start) * 1000, 3))
                break
    except SendError as e:
        result.update(status="send_failed", error=str(e))
    finally:
        transport.close()
    return result


def main():
    if len(sys.argv) < 2:
        print("Usage: python3 -m tools.echo_once <ipv4>")
        return 1
    try:
        res = echo_once(sys.argv[1], Settings())
    except TransportSetupError as e:
        print(f"cannot open raw socket: {e} (run as root or grant CAP_NET_RAW)")
        return 1
    print(json.dumps(res, indent=2))
    return 0 if res["status"] == "reply" else 2


if __name__ == "__main__":
    sys.exit(main())
