"""
Core app models.

Provides abstract base models and shared utilities used across the project.
"""

from django.conf import settings
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models

from core.permissions_constants import CorePerms


class TimeStampedModel(models.Model):
    """
    Abstract base model that provides self-updating ``created_at`` and
    ``updated_at`` timestamp fields for every concrete child model.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Created At",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name="Updated At",
    )

    class Meta:
        abstract = True


class Notification(TimeStampedModel):
    """
    In-app notification sent to a user about report triage, assignment,
    and resolution events.

    Uses a GenericForeignKey so any model instance can be the *source* of a
    notification (e.g. a new Assignment notifies the assigned commander).
    ``object_id`` is text so both UUID and integer keys fit.
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        verbose_name="Recipient",
    )
    title = models.CharField(max_length=255, verbose_name="Title")
    message = models.TextField(verbose_name="Message")
    is_read = models.BooleanField(default=False, verbose_name="Read")

    content_type = models.ForeignKey(
        ContentType,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        verbose_name="Related Content Type",
    )
    object_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        verbose_name="Related Object ID",
    )
    content_object = GenericForeignKey("content_type", "object_id")

    class Meta:
        verbose_name = "Notification"
        verbose_name_plural = "Notifications"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["recipient", "is_read"]),
        ]

    def __str__(self):
        return f"[{self.recipient}] {self.title}"


class SystemMetric(models.Model):
    """
    Dashboard counters, recomputed whenever a report or assignment
    changes.  A single row keyed by ``name="global"`` is maintained.
    """

    name = models.CharField(max_length=50, unique=True, default="global")
    total_reports = models.PositiveIntegerField(default=0)
    pending_reports = models.PositiveIntegerField(default=0)
    active_operations = models.PositiveIntegerField(
        default=0,
        help_text="Assignments that are not yet resolved.",
    )
    resolved_reports = models.PositiveIntegerField(default=0)
    critical_open_reports = models.PositiveIntegerField(default=0)
    computed_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "System Metric"
        verbose_name_plural = "System Metrics"
        permissions = [
            (CorePerms.CAN_VIEW_SYSTEM_METRICS, "Can view dashboard metrics"),
        ]

    def __str__(self):
        return f"{self.name} @ {self.computed_at:%Y-%m-%d %H:%M}"
