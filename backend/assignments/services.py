"""
Assignments Service Layer.

``AssignmentService`` owns every write to ``Assignment`` rows and the
mirrored ``Report.status``.  Each mutation runs in one transaction:

1. Lock the row(s) being changed (``select_for_update``).
2. Compute the next status with ``lifecycle.advance``.  An illegal
   request raises ``InvalidTransition`` before anything is written.
3. Save the assignment, mirror its status onto the report.
4. Append one audit entry, create one notification, emit change events
   (dispatched after commit).

Permission split
----------------
- HQ staff (``can_assign_report`` / ``can_review_resolution``):
  assign, resolve, return for revision.
- The assigned commander (``can_respond_to_assignment`` and ownership):
  accept, respond, submit a resolution, resubmit.
"""

from __future__ import annotations

import logging
from typing import Any

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.db.models import QuerySet
from django.utils import timezone

from audit.models import ActionType, EntityType
from audit.services import AuditTrailRecorder
from commanders.models import UnitCommander
from core.domain.access import apply_permission_scope, require_permission
from core.domain.events import EntityChangeBus, EventType
from core.domain.exceptions import (
    AlreadyAssigned,
    Conflict,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    ValidationFailed,
)
from core.domain.notifications import NotificationService
from core.domain.transactions import lock_for_update
from core.permissions_constants import AssignmentsPerms
from reports.models import Report, ReportStatus

from .lifecycle import (
    RESPOND_EVENTS,
    TERMINAL_ASSIGNMENT_STATES,
    TERMINAL_REPORT_STATES,
    AssignmentEvent,
    advance,
    report_may_move,
    report_status_for,
)
from .models import Assignment, AssignmentStatus

logger = logging.getLogger(__name__)

ASSIGNMENT_TABLE = "assignments.Assignment"
REPORT_TABLE = "reports.Report"

_ASSIGN_PERM = f"assignments.{AssignmentsPerms.CAN_ASSIGN_REPORT}"
_REVIEW_PERM = f"assignments.{AssignmentsPerms.CAN_REVIEW_RESOLUTION}"
_RESPOND_PERM = f"assignments.{AssignmentsPerms.CAN_RESPOND_TO_ASSIGNMENT}"

OUTCOME_FIELDS = (
    "casualties",
    "injured_personnel",
    "civilians_rescued",
    "weapons_recovered",
)

ASSIGNMENT_SCOPE_RULES = [
    (f"assignments.{AssignmentsPerms.CAN_SCOPE_ALL_ASSIGNMENTS}", lambda qs, u: qs),
    (_RESPOND_PERM, lambda qs, u: qs.filter(commander__user=u)),
]


def _snapshot(assignment: Assignment) -> dict[str, Any]:
    data = {
        "report_id": str(assignment.report_id),
        "commander_id": assignment.commander_id,
        "unit": assignment.unit,
        "status": assignment.status,
        "resolution_notes": assignment.resolution_notes,
        "revision_reason": assignment.revision_reason,
    }
    for name in OUTCOME_FIELDS:
        data[name] = getattr(assignment, name)
    return data


def has_open_assignment(report: Report) -> bool:
    return (
        Assignment.objects
        .filter(report=report)
        .exclude(status__in=TERMINAL_ASSIGNMENT_STATES)
        .exists()
    )


def _ensure_owner(assignment: Assignment, actor: Any) -> None:
    if assignment.commander.user_id != getattr(actor, "pk", None):
        raise PermissionDenied("Only the assigned commander can act on this assignment.")


def _apply_outcome(assignment: Assignment, outcome: dict[str, Any]) -> list[str]:
    """Copy notes and outcome metrics present in ``outcome``; return changed field names."""
    changed = []
    notes = outcome.get("resolution_notes")
    if notes is not None and str(notes).strip():
        assignment.resolution_notes = str(notes).strip()
        changed.append("resolution_notes")
    for name in OUTCOME_FIELDS:
        if outcome.get(name) is not None:
            setattr(assignment, name, outcome[name])
            changed.append(name)
    return changed


def _require_notes(outcome: dict[str, Any]) -> None:
    if not str(outcome.get("resolution_notes") or "").strip():
        raise ValidationFailed(errors={"resolution_notes": ["Resolution notes are required."]})


# ═══════════════════════════════════════════════════════════════════
#  Assignment Service
# ═══════════════════════════════════════════════════════════════════


class AssignmentService:

    # ── Queries ──────────────────────────────────────────────────────

    @staticmethod
    def list_assignments(user: Any, filters: dict[str, Any] | None = None) -> QuerySet:
        """
        Assignments visible to ``user``: HQ staff see all, commanders
        see their own.  Filters: ``status``, ``report``, ``commander``.
        """
        qs = apply_permission_scope(
            Assignment.objects.select_related("report", "commander", "assigned_by"),
            user,
            scope_rules=ASSIGNMENT_SCOPE_RULES,
        )
        filters = filters or {}
        if filters.get("status"):
            qs = qs.filter(status=filters["status"])
        if filters.get("report"):
            qs = qs.filter(report_id=filters["report"])
        if filters.get("commander"):
            qs = qs.filter(commander_id=filters["commander"])
        return qs.order_by("-assigned_at")

    @staticmethod
    def get_assignment(user: Any, assignment_id: Any) -> Assignment:
        try:
            return AssignmentService.list_assignments(user).get(pk=assignment_id)
        except (Assignment.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            raise NotFound(f"Assignment {assignment_id} not found.")

    # ── Assign ───────────────────────────────────────────────────────

    @staticmethod
    def assign(
        report_id: Any,
        commander_id: Any,
        assigned_by: Any,
        unit: str | None = None,
    ) -> Assignment:
        """
        Bind a report to an active commander.

        Parameters
        ----------
        report_id : UUID
            Report to dispatch.
        commander_id : int
            ``UnitCommander`` PK.
        assigned_by : User
            Must hold ``assignments.can_assign_report``.
        unit : str | None
            Target unit; defaults to the commander's own unit.

        Returns
        -------
        Assignment
            New row with ``status=assigned``; the report is ``assigned``.

        Raises
        ------
        NotFound
            Report or commander does not exist.
        AlreadyAssigned
            The report already has a non-resolved assignment, including
            when a concurrent request wins the race to insert one.
        InvalidTransition
            The report is resolved.
        Conflict
            The commander is not active.
        """
        require_permission(assigned_by, _ASSIGN_PERM)

        try:
            with transaction.atomic():
                report = lock_for_update(Report, report_id)
                if report.status in TERMINAL_REPORT_STATES:
                    raise InvalidTransition(
                        current=report.status,
                        target=ReportStatus.ASSIGNED,
                        reason="resolved reports cannot be reassigned",
                    )
                if has_open_assignment(report):
                    raise AlreadyAssigned(report_id=report.serial_number)

                try:
                    commander = UnitCommander.objects.select_related("user").get(pk=commander_id)
                except (UnitCommander.DoesNotExist, ValueError, TypeError):
                    raise NotFound(f"Commander with id {commander_id} not found.")
                if not commander.is_active:
                    raise Conflict(
                        f"Commander {commander.full_name} is {commander.status} "
                        f"and cannot receive assignments."
                    )

                assignment = Assignment.objects.create(
                    report=report,
                    commander=commander,
                    unit=(unit or commander.unit or "").strip(),
                    assigned_by=assigned_by,
                    assigned_at=timezone.now(),
                    status=AssignmentStatus.ASSIGNED,
                )

                old_report_status = report.status
                report.status = ReportStatus.ASSIGNED
                report.save(update_fields=["status", "updated_at"])

                AuditTrailRecorder.record(
                    entity_type=EntityType.ASSIGNMENT,
                    entity_id=assignment.pk,
                    action_type=ActionType.ASSIGN,
                    actor=assigned_by,
                    old_values={"status": old_report_status},
                    new_values=_snapshot(assignment),
                    report=report,
                )
                NotificationService.create(
                    actor=assigned_by,
                    recipients=commander.user,
                    event_type="report_assigned",
                    payload={"serial_number": report.serial_number},
                    related_object=assignment,
                )
                EntityChangeBus.emit(ASSIGNMENT_TABLE, EventType.INSERT, assignment.pk)
                EntityChangeBus.emit(
                    REPORT_TABLE,
                    EventType.UPDATE,
                    report.pk,
                    {"status": [old_report_status, report.status]},
                )
        except IntegrityError:
            logger.warning("Concurrent assignment of report %s lost the race", report_id)
            raise AlreadyAssigned(report_id=report_id)

        logger.info(
            "Report %s assigned to commander %s by %s",
            report.serial_number,
            commander.pk,
            assigned_by,
        )
        return assignment

    # ── Commander-side transitions ───────────────────────────────────

    @staticmethod
    def respond(assignment_id: Any, new_status: str, actor: Any) -> Assignment:
        """
        Commander moves the assignment forward: ``accepted`` from
        ``assigned``, ``responded_to`` from ``accepted``.
        """
        require_permission(actor, _RESPOND_PERM)
        event = RESPOND_EVENTS.get(new_status)
        if event is None:
            raise InvalidTransition(
                target=str(new_status),
                reason=f"respond accepts only: {', '.join(RESPOND_EVENTS)}",
            )

        with transaction.atomic():
            assignment = lock_for_update(Assignment, assignment_id)
            _ensure_owner(assignment, actor)
            notify = (
                "assignment_accepted" if event == AssignmentEvent.ACCEPT
                else "assignment_responded"
            )
            return AssignmentService._transition(
                assignment,
                event,
                actor,
                action_type=ActionType.STATUS_CHANGE,
                notify_admins=notify,
            )

    @staticmethod
    def submit_resolution(assignment_id: Any, outcome: dict[str, Any], actor: Any) -> Assignment:
        """
        Commander files resolution notes and outcome metrics.

        Only allowed in ``responded_to``; the status does not change.  The
        filed resolution waits for HQ to ``resolve`` or
        ``return_for_revision``.
        """
        require_permission(actor, _RESPOND_PERM)
        _require_notes(outcome)

        with transaction.atomic():
            assignment = lock_for_update(Assignment, assignment_id)
            _ensure_owner(assignment, actor)
            if assignment.status != AssignmentStatus.RESPONDED_TO:
                raise InvalidTransition(
                    current=assignment.status,
                    target=AssignmentStatus.RESPONDED_TO,
                    reason="a resolution can only be submitted after responding",
                )

            before = _snapshot(assignment)
            changed = _apply_outcome(assignment, outcome)
            assignment.save(update_fields=[*changed, "updated_at"])

            report = assignment.report
            AuditTrailRecorder.record(
                entity_type=EntityType.ASSIGNMENT,
                entity_id=assignment.pk,
                action_type=ActionType.UPDATE,
                actor=actor,
                old_values=before,
                new_values=_snapshot(assignment),
                report=report,
            )
            NotificationService.notify_admins(
                actor=actor,
                event_type="resolution_submitted",
                payload={"serial_number": report.serial_number},
                related_object=assignment,
            )
            EntityChangeBus.emit(ASSIGNMENT_TABLE, EventType.UPDATE, assignment.pk, {"fields": changed})
        return assignment

    @staticmethod
    def resubmit(assignment_id: Any, outcome: dict[str, Any], actor: Any) -> Assignment:
        """
        Commander revises a returned resolution.  The same row goes
        back to ``responded_to``; the report status is unchanged.
        """
        require_permission(actor, _RESPOND_PERM)
        _require_notes(outcome)

        with transaction.atomic():
            assignment = lock_for_update(Assignment, assignment_id)
            _ensure_owner(assignment, actor)
            return AssignmentService._transition(
                assignment,
                AssignmentEvent.RESUBMIT,
                actor,
                action_type=ActionType.STATUS_CHANGE,
                outcome=outcome,
                notify_admins="resolution_submitted",
            )

    # ── HQ review ────────────────────────────────────────────────────

    @staticmethod
    def resolve(assignment_id: Any, outcome: dict[str, Any], actor: Any) -> Assignment:
        """
        Close an assignment and its report.  Only valid from
        ``responded_to``; ``resolved`` is terminal for both.
        """
        require_permission(actor, _REVIEW_PERM)

        with transaction.atomic():
            assignment = lock_for_update(Assignment, assignment_id)
            return AssignmentService._transition(
                assignment,
                AssignmentEvent.RESOLVE,
                actor,
                action_type=ActionType.RESOLVE,
                outcome=outcome,
                extra={"resolved_by": actor, "resolved_at": timezone.now()},
                notify_commander=("report_resolved", {}),
                severity="medium",
            )

    @staticmethod
    def return_for_revision(assignment_id: Any, reason: str, actor: Any) -> Assignment:
        """
        Send a submitted resolution back to the commander.  ``reason``
        must be non-blank and is shown to the commander.  Raises
        ``InvalidTransition`` when the commander has responded but not
        yet filed resolution notes.
        """
        require_permission(actor, _REVIEW_PERM)
        reason = (reason or "").strip()
        if not reason:
            raise ValidationFailed(errors={"reason": ["A reason is required when returning a resolution."]})

        with transaction.atomic():
            assignment = lock_for_update(Assignment, assignment_id)
            if assignment.status == AssignmentStatus.RESPONDED_TO and not (assignment.resolution_notes or "").strip():
                raise InvalidTransition(
                    current=assignment.status,
                    target=AssignmentStatus.RETURNED_FOR_REVISION,
                    reason="no resolution has been submitted",
                )
            return AssignmentService._transition(
                assignment,
                AssignmentEvent.RETURN_FOR_REVISION,
                actor,
                action_type=ActionType.RETURN_FOR_REVISION,
                extra={"revision_reason": reason},
                notify_commander=("resolution_returned", {"reason": reason}),
                change_reason=reason,
            )

    # ── Internals ────────────────────────────────────────────────────

    @staticmethod
    def _transition(
        assignment: Assignment,
        event: AssignmentEvent,
        actor: Any,
        *,
        action_type: str,
        outcome: dict[str, Any] | None = None,
        extra: dict[str, Any] | None = None,
        notify_admins: str | None = None,
        notify_commander: tuple[str, dict[str, Any]] | None = None,
        change_reason: str = "",
        severity: str = "info",
    ) -> Assignment:
        """
        Apply one lifecycle edge to a locked assignment.  Must run inside
        the caller's ``transaction.atomic()``.
        """
        old_status = assignment.status
        new_status = advance(old_status, event)
        before = _snapshot(assignment)

        changed = _apply_outcome(assignment, outcome or {})
        for name, value in (extra or {}).items():
            setattr(assignment, name, value)
            changed.append(name)
        assignment.status = new_status
        assignment.save(update_fields=["status", *changed, "updated_at"])

        report = lock_for_update(Report, assignment.report_id)
        old_report_status = report.status
        mirrored = report_status_for(new_status)
        if mirrored != old_report_status and report_may_move(old_report_status, mirrored):
            report.status = mirrored
            report.save(update_fields=["status", "updated_at"])
            EntityChangeBus.emit(
                REPORT_TABLE,
                EventType.UPDATE,
                report.pk,
                {"status": [old_report_status, mirrored]},
            )

        AuditTrailRecorder.record(
            entity_type=EntityType.ASSIGNMENT,
            entity_id=assignment.pk,
            action_type=action_type,
            actor=actor,
            old_values=before,
            new_values=_snapshot(assignment),
            report=report,
            change_reason=change_reason,
            severity=severity,
            metadata={"event": event.value, "report_status": report.status},
        )

        payload = {"serial_number": report.serial_number}
        if notify_commander is not None:
            event_type, extra_payload = notify_commander
            NotificationService.create(
                actor=actor,
                recipients=assignment.commander.user,
                event_type=event_type,
                payload={**payload, **extra_payload},
                related_object=assignment,
            )
        if notify_admins is not None:
            NotificationService.notify_admins(
                actor=actor,
                event_type=notify_admins,
                payload=payload,
                related_object=assignment,
            )

        EntityChangeBus.emit(
            ASSIGNMENT_TABLE,
            EventType.UPDATE,
            assignment.pk,
            {"status": [old_status, new_status]},
        )
        logger.info(
            "Assignment %s: %s -> %s (%s) by %s",
            assignment.pk,
            old_status,
            new_status,
            event.value,
            actor,
        )
        return assignment
