"""
Audit Service Layer.

``AuditTrailRecorder.record`` is called by every service that mutates a
report, an assignment or a commander.  It is **best-effort**: the write
happens inside its own savepoint and a database error is logged and
swallowed, so a failing audit insert never rolls back or fails the
business operation that triggered it.

Reads (``get_trail``, ``list_logs``) are plain queries; nothing in this
module ever updates or deletes a row.
"""

from __future__ import annotations

import logging
from typing import Any

from django.db import DatabaseError, transaction
from django.db.models import QuerySet

from core.domain.access import require_permission
from core.domain.exceptions import NotFound
from core.permissions_constants import AuditPerms

from .models import ActorType, AuditLog, ReportAuditTrail, Severity

logger = logging.getLogger(__name__)

_VIEW_TRAIL_PERM = f"audit.{AuditPerms.CAN_VIEW_AUDIT_TRAIL}"


def _actor_type_for(actor: Any) -> str:
    if actor is None or not getattr(actor, "is_authenticated", False):
        return ActorType.ANONYMOUS
    return ActorType.USER


def _changed_fields(old: dict[str, Any], new: dict[str, Any]) -> list[str]:
    keys = list(dict.fromkeys([*old.keys(), *new.keys()]))
    return [k for k in keys if old.get(k) != new.get(k)]


class AuditTrailRecorder:
    """Append-only writer and reader for the audit trail."""

    @staticmethod
    def record(
        *,
        entity_type: str,
        entity_id: Any,
        action_type: str,
        actor: Any = None,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        report: Any = None,
        change_reason: str = "",
        severity: str = Severity.INFO,
        is_sensitive: bool = False,
        metadata: dict[str, Any] | None = None,
        actor_type: str | None = None,
    ) -> AuditLog | None:
        """
        Append one ``AuditLog`` row (plus ``ReportAuditTrail`` links when
        ``report`` is given).

        Parameters
        ----------
        entity_type, entity_id, action_type : str
            What changed and how (see ``audit.models`` choices).
        actor : User | None
            ``None`` or an anonymous user records ``actor_type="anonymous"``.
        old_values, new_values : dict | None
            Field snapshots before and after the mutation.
        report : Report | None
            Links the entry to a report trail; one link row per changed
            field, or a single untagged link when nothing differs.
        change_reason : str
            Free text copied onto the trail links (e.g. revision reason).
        actor_type : str | None
            Override, e.g. ``"system"`` for change-event listeners.

        Returns
        -------
        AuditLog | None
            ``None`` when the write failed (already logged).
        """
        old_values = old_values or {}
        new_values = new_values or {}
        user = actor if getattr(actor, "is_authenticated", False) else None

        try:
            with transaction.atomic():
                entry = AuditLog.objects.create(
                    entity_type=entity_type,
                    entity_id=str(entity_id),
                    action_type=action_type,
                    actor=user,
                    actor_type=actor_type or _actor_type_for(actor),
                    old_values=old_values or None,
                    new_values=new_values or None,
                    metadata=metadata or {},
                    severity_level=severity,
                    is_sensitive=is_sensitive,
                )
                if report is not None:
                    changed = _changed_fields(old_values, new_values) or [""]
                    ReportAuditTrail.objects.bulk_create([
                        ReportAuditTrail(
                            report=report,
                            audit_log=entry,
                            field_changed=field,
                            previous_value=old_values.get(field) if field else None,
                            new_value=new_values.get(field) if field else None,
                            change_reason=change_reason,
                        )
                        for field in changed
                    ])
        except (DatabaseError, TypeError, ValueError):
            logger.exception(
                "Audit write failed for %s:%s action=%s",
                entity_type,
                entity_id,
                action_type,
            )
            return None
        return entry

    @staticmethod
    def get_trail(report_id: Any, requesting_user: Any = None) -> QuerySet:
        """
        Audit trail of a report, ascending by creation time.

        When ``requesting_user`` is given it must hold the audit-trail
        permission.
        """
        if requesting_user is not None:
            require_permission(requesting_user, _VIEW_TRAIL_PERM)
        return (
            ReportAuditTrail.objects
            .filter(report_id=report_id)
            .select_related("audit_log", "audit_log__actor")
            .order_by("created_at", "id")
        )

    @staticmethod
    def list_logs(requesting_user: Any, filters: dict[str, Any] | None = None) -> QuerySet:
        require_permission(requesting_user, _VIEW_TRAIL_PERM)
        qs = AuditLog.objects.select_related("actor")
        filters = filters or {}
        for key in ("entity_type", "entity_id", "action_type", "severity_level", "actor_type"):
            if filters.get(key):
                qs = qs.filter(**{key: filters[key]})
        if filters.get("since"):
            qs = qs.filter(timestamp__gte=filters["since"])
        return qs.order_by("-timestamp", "-id")

    @staticmethod
    def get_log(requesting_user: Any, log_id: Any) -> AuditLog:
        require_permission(requesting_user, _VIEW_TRAIL_PERM)
        try:
            return AuditLog.objects.select_related("actor").get(pk=int(log_id))
        except (AuditLog.DoesNotExist, TypeError, ValueError):
            raise NotFound(f"Audit log entry {log_id} not found.")
