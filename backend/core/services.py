"""
Core app services — **Service Layer**.

Cross-app aggregation (dashboard metrics), system enumerations for the
frontend, and per-user notification queries.

╔══════════════════════════════════════════════════════════════════════╗
║  CROSS-APP IMPORT RULEBOOK                                         ║
║                                                                    ║
║  Every other app imports ``core``; ``core`` must therefore never   ║
║  import another app's models at **module level**.                  ║
║                                                                    ║
║  Preferred pattern inside a method::                               ║
║                                                                    ║
║      from django.apps import apps                                  ║
║      Report = apps.get_model("reports", "Report")                  ║
║                                                                    ║
║  Choice classes are imported lazily inside methods too.            ║
╚══════════════════════════════════════════════════════════════════════╝
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from django.apps import apps
from django.db.models import Count, Q, QuerySet

from core.domain.access import require_permission
from core.domain.events import EntityChanged
from core.domain.exceptions import NotFound
from core.permissions_constants import CorePerms

if TYPE_CHECKING:
    from accounts.models import User
    from core.models import Notification, SystemMetric

logger = logging.getLogger(__name__)


# ════════════════════════════════════════════════════════════════════
#  System Metrics Service
# ════════════════════════════════════════════════════════════════════

class SystemMetricsService:
    """
    Maintains the ``SystemMetric`` row shown on the HQ dashboard.

    ``recompute`` is registered (in ``CoreConfig.ready``) as a listener
    for report and assignment INSERT/UPDATE events, so the counters
    refresh after every committed change.  Counts are always taken from
    the source tables; nothing is incremented in place.
    """

    METRIC_NAME: str = "global"

    @staticmethod
    def recompute() -> SystemMetric:
        """Recount every counter and upsert the global row."""
        from assignments.models import AssignmentStatus
        from reports.models import ReportStatus, Urgency

        Report = apps.get_model("reports", "Report")
        Assignment = apps.get_model("assignments", "Assignment")
        SystemMetric = apps.get_model("core", "SystemMetric")

        counts = Report.objects.aggregate(
            total_reports=Count("id"),
            pending_reports=Count("id", filter=Q(status=ReportStatus.PENDING)),
            resolved_reports=Count("id", filter=Q(status=ReportStatus.RESOLVED)),
            critical_open_reports=Count(
                "id",
                filter=Q(urgency=Urgency.CRITICAL) & ~Q(status=ReportStatus.RESOLVED),
            ),
        )
        counts["active_operations"] = (
            Assignment.objects.exclude(status=AssignmentStatus.RESOLVED).count()
        )

        metric, _ = SystemMetric.objects.update_or_create(
            name=SystemMetricsService.METRIC_NAME,
            defaults=counts,
        )
        logger.debug("System metrics recomputed: %s", counts)
        return metric

    @staticmethod
    def get_metrics(user: User) -> SystemMetric:
        """Current counters; computed on first access."""
        require_permission(user, f"core.{CorePerms.CAN_VIEW_SYSTEM_METRICS}")
        SystemMetric = apps.get_model("core", "SystemMetric")
        metric = SystemMetric.objects.filter(name=SystemMetricsService.METRIC_NAME).first()
        return metric or SystemMetricsService.recompute()

    @classmethod
    def handle_change(cls, event: EntityChanged) -> None:
        cls.recompute()


# ════════════════════════════════════════════════════════════════════
#  System Constants Service
# ════════════════════════════════════════════════════════════════════

class SystemConstantsService:
    """
    Gathers the portal's choice enumerations and the role list into a
    single dict for the frontend.  Public, user-independent data.
    """

    @staticmethod
    def get_constants() -> dict[str, Any]:
        from assignments.models import AssignmentStatus
        from commanders.models import CommanderStatus
        from reports.models import ReportStatus, Urgency, ValidationStatus

        Role = apps.get_model("accounts", "Role")

        to_list = SystemConstantsService._choices_to_list

        roles = list(
            Role.objects
            .order_by("-hierarchy_level")
            .values("id", "name", "hierarchy_level")
        )

        return {
            "report_statuses": to_list(ReportStatus),
            "urgency_levels": to_list(Urgency),
            "validation_statuses": to_list(ValidationStatus),
            "assignment_statuses": to_list(AssignmentStatus),
            "commander_statuses": to_list(CommanderStatus),
            "role_hierarchy": roles,
        }

    @staticmethod
    def _choices_to_list(choices_class: type) -> list[dict[str, str]]:
        """
        Convert a Django ``TextChoices`` class to a list of
        ``{"value": ..., "label": ...}`` dicts.
        """
        return [
            {"value": str(value), "label": str(label)}
            for value, label in choices_class.choices
        ]


# ═══════════════════════════════════════════════════════════════════
#  Notification Service
# ═══════════════════════════════════════════════════════════════════

class NotificationService:
    """
    Lists and marks notifications for one user.  Creation lives in
    ``core.domain.notifications``.
    """

    def __init__(self, user: Any) -> None:
        self.user = user

    def list_notifications(self, unread_only: bool = False) -> QuerySet:
        """Notifications for ``self.user``, most recent first."""
        from core.models import Notification

        qs = (
            Notification.objects
            .filter(recipient=self.user)
            .select_related("content_type")
            .order_by("-created_at")
        )
        if unread_only:
            qs = qs.filter(is_read=False)
        return qs

    def mark_as_read(self, notification_id: Any) -> Notification:
        """
        Mark one of the user's notifications as read.

        Raises:
            NotFound: no such notification for this user.
        """
        from core.models import Notification

        try:
            notification = Notification.objects.get(
                pk=notification_id,
                recipient=self.user,
            )
        except (Notification.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Notification {notification_id} not found.")
        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=["is_read", "updated_at"])
        return notification
