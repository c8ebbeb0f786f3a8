"""
Report and assignment status lifecycle.

Pure functions over status values; nothing here touches the database.
Services call ``advance`` before writing so an illegal request raises
``InvalidTransition`` while the stored state is still untouched.

Assignment::

    assigned ──accept──▶ accepted ──respond──▶ responded_to ──resolve──▶ resolved
                                                   │   ▲
                                 return_for_revision   resubmit
                                                   ▼   │
                                          returned_for_revision

The report mirrors its active assignment (``report_status_for``); a
returned resolution leaves the report at ``responded_to``.
"""

from __future__ import annotations

from enum import Enum

from core.domain.exceptions import InvalidTransition
from reports.models import ReportStatus

from .models import AssignmentStatus


class AssignmentEvent(str, Enum):
    ACCEPT = "accept"
    RESPOND = "respond"
    RETURN_FOR_REVISION = "return_for_revision"
    RESUBMIT = "resubmit"
    RESOLVE = "resolve"


#: (current status, event) → next status.  Pairs not listed are illegal.
TRANSITIONS: dict[tuple[str, AssignmentEvent], str] = {
    (AssignmentStatus.ASSIGNED, AssignmentEvent.ACCEPT): AssignmentStatus.ACCEPTED,
    (AssignmentStatus.ACCEPTED, AssignmentEvent.RESPOND): AssignmentStatus.RESPONDED_TO,
    (AssignmentStatus.RESPONDED_TO, AssignmentEvent.RETURN_FOR_REVISION): AssignmentStatus.RETURNED_FOR_REVISION,
    (AssignmentStatus.RETURNED_FOR_REVISION, AssignmentEvent.RESUBMIT): AssignmentStatus.RESPONDED_TO,
    (AssignmentStatus.RESPONDED_TO, AssignmentEvent.RESOLVE): AssignmentStatus.RESOLVED,
}

#: Target status accepted by ``respond`` → the event it stands for.
RESPOND_EVENTS: dict[str, AssignmentEvent] = {
    AssignmentStatus.ACCEPTED: AssignmentEvent.ACCEPT,
    AssignmentStatus.RESPONDED_TO: AssignmentEvent.RESPOND,
}

_REPORT_MIRROR: dict[str, str] = {
    AssignmentStatus.ASSIGNED: ReportStatus.ASSIGNED,
    AssignmentStatus.ACCEPTED: ReportStatus.ACCEPTED,
    AssignmentStatus.RESPONDED_TO: ReportStatus.RESPONDED_TO,
    AssignmentStatus.RETURNED_FOR_REVISION: ReportStatus.RESPONDED_TO,
    AssignmentStatus.RESOLVED: ReportStatus.RESOLVED,
}

#: Report statuses in lifecycle order; a report never moves backwards.
REPORT_ORDER: tuple[str, ...] = (
    ReportStatus.PENDING,
    ReportStatus.ASSIGNED,
    ReportStatus.ACCEPTED,
    ReportStatus.RESPONDED_TO,
    ReportStatus.RESOLVED,
)

TERMINAL_ASSIGNMENT_STATES = frozenset({AssignmentStatus.RESOLVED})
TERMINAL_REPORT_STATES = frozenset({ReportStatus.RESOLVED})


def advance(state: str, event: AssignmentEvent | str) -> str:
    """
    Return the status reached from ``state`` by ``event``.

    Raises:
        InvalidTransition: ``(state, event)`` is not an edge of the lifecycle.
    """
    try:
        event = AssignmentEvent(event)
    except ValueError:
        raise InvalidTransition(current=str(state), target=str(event), reason="unknown event")

    if state in TERMINAL_ASSIGNMENT_STATES:
        raise InvalidTransition(
            current=str(state), target=event.value, reason="terminal, no further transitions",
        )

    try:
        return TRANSITIONS[(state, event)]
    except KeyError:
        allowed = sorted(e.value for (s, e) in TRANSITIONS if s == state)
        raise InvalidTransition(
            current=str(state),
            target=event.value,
            reason=f"allowed events: {', '.join(allowed)}",
        )


def can_advance(state: str, event: AssignmentEvent | str) -> bool:
    try:
        advance(state, event)
    except InvalidTransition:
        return False
    return True


def report_status_for(assignment_status: str) -> str:
    """Report status that mirrors the given assignment status."""
    return _REPORT_MIRROR[assignment_status]


def report_may_move(current: str, target: str) -> bool:
    """True when ``target`` is the same as or later than ``current``."""
    return REPORT_ORDER.index(target) >= REPORT_ORDER.index(current)
