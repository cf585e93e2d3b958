from dataclasses import dataclass

VERSION = "0.2.1"

@dataclass
class Settings:
    # fixed cadence, not exposed on the command line
    probe_interval_s: float = 0.9
    reply_timeout_s: float = 1.9
    payload: bytes = b"12345677890"

    # strict matching compares identifier and sequence; False matches on identifier only
    match_sequence: bool = True

    # transport
    recv_buffer: int = 65507
    poll_interval_s: float = 0.5

    # event log
    log_dir: str = "/var/log/"
    log_name: str = "bg-ping.log"

    # single-target deployments may draw a random identifier and filter by source
    random_single_id: bool = False
