"""
Unit tests for the assignment lifecycle table and report mirroring.
No database access.
"""

from __future__ import annotations

import pytest

from assignments.lifecycle import (
    REPORT_ORDER,
    TERMINAL_ASSIGNMENT_STATES,
    TERMINAL_REPORT_STATES,
    TRANSITIONS,
    AssignmentEvent,
    advance,
    can_advance,
    report_may_move,
    report_status_for,
)
from assignments.models import AssignmentStatus
from core.domain.exceptions import InvalidTransition
from reports.models import ReportStatus

S = AssignmentStatus
E = AssignmentEvent


class TestAdvance:

    @pytest.mark.parametrize(
        "state,event,expected",
        [
            (S.ASSIGNED, E.ACCEPT, S.ACCEPTED),
            (S.ACCEPTED, E.RESPOND, S.RESPONDED_TO),
            (S.RESPONDED_TO, E.RESOLVE, S.RESOLVED),
            (S.RESPONDED_TO, E.RETURN_FOR_REVISION, S.RETURNED_FOR_REVISION),
            (S.RETURNED_FOR_REVISION, E.RESUBMIT, S.RESPONDED_TO),
        ],
    )
    def test_legal_edges(self, state, event, expected):
        assert advance(state, event) == expected

    def test_event_may_be_given_as_string(self):
        assert advance(S.ASSIGNED, "accept") == S.ACCEPTED

    @pytest.mark.parametrize(
        "state,event",
        [
            (S.ASSIGNED, E.RESOLVE),
            (S.ASSIGNED, E.RESPOND),
            (S.ACCEPTED, E.RESOLVE),
            (S.RETURNED_FOR_REVISION, E.RESOLVE),
            (S.RESPONDED_TO, E.ACCEPT),
        ],
    )
    def test_illegal_edges_raise(self, state, event):
        with pytest.raises(InvalidTransition) as excinfo:
            advance(state, event)
        assert excinfo.value.current == state
        assert not can_advance(state, event)

    def test_resolved_is_terminal(self):
        for event in AssignmentEvent:
            assert not can_advance(S.RESOLVED, event)
        with pytest.raises(InvalidTransition, match="no further transitions"):
            advance(S.RESOLVED, E.ACCEPT)

    def test_terminal_states_have_no_outgoing_edges(self):
        assert not any(state in TERMINAL_ASSIGNMENT_STATES for state, _event in TRANSITIONS)
        assert {report_status_for(s) for s in TERMINAL_ASSIGNMENT_STATES} == TERMINAL_REPORT_STATES
        assert REPORT_ORDER[-1] in TERMINAL_REPORT_STATES

    def test_error_lists_allowed_events(self):
        with pytest.raises(InvalidTransition, match="allowed events: resolve, return_for_revision"):
            advance(S.RESPONDED_TO, E.RESUBMIT)

    def test_unknown_event(self):
        with pytest.raises(InvalidTransition, match="unknown event"):
            advance(S.ASSIGNED, "teleport")

    def test_every_edge_targets_a_known_status(self):
        for (state, _event), target in TRANSITIONS.items():
            assert state in S.values
            assert target in S.values


class TestReportMirror:

    def test_returned_resolution_leaves_report_responded(self):
        assert report_status_for(S.RETURNED_FOR_REVISION) == ReportStatus.RESPONDED_TO

    def test_resolved_mirrors_resolved(self):
        assert report_status_for(S.RESOLVED) == ReportStatus.RESOLVED

    def test_report_never_moves_backwards(self):
        assert report_may_move(ReportStatus.ASSIGNED, ReportStatus.ACCEPTED)
        assert report_may_move(ReportStatus.RESPONDED_TO, ReportStatus.RESPONDED_TO)
        assert not report_may_move(ReportStatus.RESOLVED, ReportStatus.ASSIGNED)

    def test_order_covers_every_report_status(self):
        assert set(REPORT_ORDER) == set(ReportStatus.values)
