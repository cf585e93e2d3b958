# bgping/cli.py
# Usage examples:
#   sudo bg-ping --ip 8.8.8.8,1.1.1.1
#   sudo bg-ping 8.8.8.8 9.9.9.9 --log /tmp
import argparse
import ipaddress
import logging
import re
import signal
import sys
from typing import Iterable, List, Optional

from bgping.config import VERSION, Settings
from bgping.engine.controller import Monitor
from bgping.prober.base import Transport, TransportSetupError
from bgping.sink import EventSink, FileSink, Recorder, SinkError

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = ("SIGHUP", "SIGINT", "SIGTERM", "SIGQUIT")


def is_valid_ipv4(ip: str) -> bool:
    try:
        ipaddress.IPv4Address(ip)
    except ValueError:
        return False
    return True


def parse_targets(values: Iterable[str]) -> List[str]:
    """
    Split on commas, spaces or semicolons, validate, and deduplicate while
    preserving order. Raises ValueError on the first bad address.
    """
    seen, out = set(), []
    for value in values:
        for ip in (x for x in re.split(r"[,\s;]+", value.strip()) if x):
            if not is_valid_ipv4(ip):
                raise ValueError(f"{ip} is an invalid ip address")
            if ip not in seen:
                out.append(ip)
                seen.add(ip)
    return out


def build_argparser():
    ap = argparse.ArgumentParser(
        prog="bg-ping",
        description="Background ICMP prober: logs connectivity outages for IPv4 hosts",
        add_help=False,
    )
    ap.add_argument("targets", nargs="*", help="IPv4 address(es) to monitor")
    ap.add_argument("--ip", action="append", default=[],
                    help="Comma separated list of IPs to monitor, ex: --ip X.X.X.X,Y.Y.Y.Y")
    ap.add_argument("--log", default=Settings.log_dir,
                    help="Folder where to create the log file (default: %(default)s)")
    ap.add_argument("--help", "-h", action="store_true", help="Print usage")
    ap.add_argument("--ver", action="store_true", help="Print the program's version")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug output on stderr")
    return ap


def install_signal_handlers(monitor: Monitor, recorder: Recorder) -> None:
    def handler(signum, frame):
        # a repeated signal only needs the first one's work
        if monitor.stop_event.is_set():
            return
        name = signal.Signals(signum).name
        try:
            recorder.final(f"Captured {name}, closing log and terminating")
        finally:
            monitor.stop()

    for name in SHUTDOWN_SIGNALS:
        sig = getattr(signal, name, None)
        if sig is not None:
            signal.signal(sig, handler)


def open_transport(settings: Settings) -> Transport:
    from bgping.prober.icmp import IcmpSocketTransport
    return IcmpSocketTransport(recv_buffer=settings.recv_buffer,
                               poll_interval_s=settings.poll_interval_s)


def run(targets: List[str], sink: EventSink, transport: Transport,
        settings: Settings) -> int:
    recorder = Recorder(sink)
    monitor = Monitor(transport, recorder, settings, targets)
    install_signal_handlers(monitor, recorder)
    try:
        monitor.run_forever()
    except SinkError as e:
        logger.critical("%s", e)
        return 1
    finally:
        monitor.stop()
        monitor.join()
        transport.close()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    ap = build_argparser()
    try:
        args = ap.parse_args(argv)
    except SystemExit as e:
        return 0 if e.code == 0 else 1

    logging.basicConfig(format="%(message)s", stream=sys.stderr,
                        level=logging.DEBUG if args.verbose else logging.WARNING)

    if args.help:
        ap.print_help()
        return 0
    if args.ver:
        print(f"\nVersion: {VERSION}\n")
        return 0

    try:
        targets = parse_targets(list(args.ip) + list(args.targets))
    except ValueError as e:
        logger.error("%s failed: %s, terminating...", ap.prog, e)
        return 1
    if not targets:
        logger.error("%s missing remote ip address(es) for ping, terminating...", ap.prog)
        ap.print_usage(sys.stderr)
        return 1

    settings = Settings(log_dir=args.log)
    try:
        sink = FileSink.in_dir(settings.log_dir, settings.log_name)
    except SinkError as e:
        logger.error("%s %s", ap.prog, e)
        return 1

    try:
        try:
            transport = open_transport(settings)
        except TransportSetupError as e:
            Recorder(sink).event(f"{ap.prog} {e}, terminating")
            return 1
        return run(targets, sink, transport, settings)
    except SinkError as e:
        logger.critical("%s", e)
        return 1
    finally:
        sink.close()


if __name__ == "__main__":
    sys.exit(main())
