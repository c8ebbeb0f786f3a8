"""
core.domain.notifications — Synchronous notification creation helper.

Centralises notification creation so every app uses one consistent
entry-point rather than directly constructing ``Notification`` objects.

Design decisions
----------------
* **Synchronous** — rows are written in the calling transaction, so a
  rolled-back assignment never leaves a dangling notification.
* **Supports multiple recipients** — pass a single ``User`` or an
  iterable of ``User`` instances.
* **Generic relation** — ``related_object`` is optional; if provided
  its ``ContentType`` and PK are stored via the ``Notification`` model's
  ``GenericForeignKey``.  PKs are stored as text so UUID-keyed reports
  and assignments link the same way as integer-keyed rows.

Usage::

    from core.domain.notifications import NotificationService

    NotificationService.create(
        actor=request.user,
        recipients=assignment.commander.user,
        event_type="report_assigned",
        payload={"serial_number": report.serial_number},
        related_object=assignment,
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable

from django.contrib.auth import get_user_model
from django.contrib.contenttypes.models import ContentType
from django.db import models

if TYPE_CHECKING:
    from accounts.models import User
    from core.models import Notification

logger = logging.getLogger(__name__)

# ── Event-type → human-readable templates ───────────────────────────
# Message templates are formatted with ``payload``; missing keys fall
# back to the raw template.
_EVENT_TEMPLATES: dict[str, tuple[str, str]] = {
    # event_type: (title_template, message_template)
    "report_submitted":      ("New Report Submitted",   "Report {serial_number} was submitted and awaits triage."),
    "report_assigned":       ("Report Assigned",        "Report {serial_number} has been assigned to you."),
    "assignment_accepted":   ("Assignment Accepted",    "The commander accepted report {serial_number}."),
    "assignment_responded":  ("Unit Responded",         "A unit has responded to report {serial_number}."),
    "resolution_submitted":  ("Resolution Submitted",   "A resolution for report {serial_number} awaits review."),
    "resolution_returned":   ("Resolution Returned",    "Your resolution for report {serial_number} was returned for revision: {reason}"),
    "report_resolved":       ("Report Resolved",        "Report {serial_number} has been marked resolved."),
    "commander_status":      ("Account Status Changed", "Your commander account is now {status}."),
}


class _SafeDict(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def _admin_recipients() -> list[User]:
    from core.permissions_constants import AssignmentsPerms

    User = get_user_model()
    candidates = User.objects.filter(is_active=True).select_related("role")
    perm = f"assignments.{AssignmentsPerms.CAN_ASSIGN_REPORT}"
    return [u for u in candidates if u.has_perm(perm)]


class NotificationService:
    """
    Stateless helper for creating ``Notification`` records.

    All methods are classmethods — no instance state is needed.
    """

    @classmethod
    def create(
        cls,
        *,
        actor: User | None,
        recipients: User | Iterable[User],
        event_type: str,
        payload: dict[str, Any] | None = None,
        related_object: models.Model | None = None,
    ) -> list[Notification]:
        """
        Create one ``Notification`` per recipient.

        Args:
            actor:          The user who performed the action, or ``None``
                            for anonymous / system events.  Used for
                            logging only.
            recipients:     A single ``User`` or iterable of ``User``
                            instances.
            event_type:     Key into ``_EVENT_TEMPLATES``.  If unknown
                            the raw event_type is used as title.
            payload:        Context used to format the message template.
            related_object: Optional model instance linked via
                            ``GenericForeignKey``.

        Returns:
            List of created ``Notification`` instances.
        """
        from core.models import Notification  # lazy import — avoids circular deps

        if isinstance(recipients, models.Model):
            recipients = [recipients]
        else:
            recipients = [r for r in recipients if r is not None]

        if not recipients:
            logger.warning(
                "NotificationService.create called with empty recipients "
                "for event_type=%s by actor=%s",
                event_type,
                actor,
            )
            return []

        title, template = _EVENT_TEMPLATES.get(
            event_type,
            (event_type.replace("_", " ").title(), f"Event: {event_type}"),
        )
        message = template.format_map(_SafeDict(payload or {}))

        content_type = None
        object_id = None
        if related_object is not None:
            content_type = ContentType.objects.get_for_model(related_object)
            object_id = str(related_object.pk)

        notifications = [
            Notification.objects.create(
                recipient=recipient,
                title=title,
                message=message,
                content_type=content_type,
                object_id=object_id,
            )
            for recipient in recipients
        ]

        logger.info(
            "Created %d notification(s) [%s] by actor=%s",
            len(notifications),
            event_type,
            actor,
        )
        return notifications

    @classmethod
    def notify_admins(
        cls,
        *,
        actor: User | None,
        event_type: str,
        payload: dict[str, Any] | None = None,
        related_object: models.Model | None = None,
    ) -> list[Notification]:
        """Notify every active user holding the report-assignment permission."""
        return cls.create(
            actor=actor,
            recipients=_admin_recipients(),
            event_type=event_type,
            payload=payload,
            related_object=related_object,
        )
