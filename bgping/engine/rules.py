# bgping/engine/rules.py
from typing import Optional

from bgping.engine.state import ProbeState
from bgping.schemas import EchoReply, EventKind


def reply_matches(reply: EchoReply, state: ProbeState, match_sequence: bool = True) -> bool:
    """
    Identifier must always agree. With match_sequence the reply must also
    carry the sequence of the outstanding request.
    """
    if reply.identifier != state.identifier:
        return False
    if match_sequence and reply.sequence != state.wire_sequence:
        return False
    return True


def on_reply(state: ProbeState) -> Optional[EventKind]:
    """Matched reply: clear an outage, advance the sequence."""
    state.replies += 1
    state.sequence += 1
    if state.outage:
        state.outage = False
        return "outage_cleared"
    return None


def on_timeout(state: ProbeState) -> Optional[EventKind]:
    """No matched reply in time. Sequence is kept for the immediate retry."""
    state.timeouts += 1
    if not state.outage:
        state.outage = True
        return "outage_detected"
    return None
