"""
Audit app models.

``AuditLog`` is the append-only record of every mutation to a report,
an assignment, or a commander.  ``ReportAuditTrail`` links audit rows to
the report they concern, one row per changed field, and is what the
compliance view reads back in creation order.

Both models refuse updates and deletes once written, at the instance
level (``save``/``delete``) and at the queryset level (``update``/
``delete``).
"""

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone

from core.permissions_constants import AuditPerms


class EntityType(models.TextChoices):
    REPORT = "report", "Report"
    ASSIGNMENT = "assignment", "Assignment"
    COMMANDER = "commander", "Commander"


class ActionType(models.TextChoices):
    CREATE = "create", "Create"
    UPDATE = "update", "Update"
    STATUS_CHANGE = "status_change", "Status Change"
    ASSIGN = "assign", "Assign"
    RESOLVE = "resolve", "Resolve"
    RETURN_FOR_REVISION = "return_for_revision", "Return for Revision"
    VALIDATE = "validate", "Validate"
    PASSWORD_SET = "password_set", "Password Set"


class ActorType(models.TextChoices):
    USER = "user", "User"
    ANONYMOUS = "anonymous", "Anonymous"
    SYSTEM = "system", "System"


class Severity(models.TextChoices):
    INFO = "info", "Info"
    LOW = "low", "Low"
    MEDIUM = "medium", "Medium"
    HIGH = "high", "High"
    CRITICAL = "critical", "Critical"


class ImmutableRecordError(Exception):
    """Raised on any attempt to change or remove an audit row."""


class AppendOnlyQuerySet(models.QuerySet):

    def update(self, **kwargs):
        raise ImmutableRecordError(f"{self.model.__name__} rows cannot be updated.")

    def delete(self):
        raise ImmutableRecordError(f"{self.model.__name__} rows cannot be deleted.")


class AppendOnlyModel(models.Model):
    """Abstract base: rows may be inserted, never changed."""

    objects = AppendOnlyQuerySet.as_manager()

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableRecordError(
                f"{type(self).__name__} {self.pk} is append-only."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableRecordError(
            f"{type(self).__name__} {self.pk} cannot be deleted."
        )


class AuditLog(AppendOnlyModel):
    """A single recorded mutation, with before/after field values."""

    entity_type = models.CharField(
        max_length=30,
        choices=EntityType.choices,
        db_index=True,
    )
    entity_id = models.CharField(max_length=64, db_index=True)
    action_type = models.CharField(
        max_length=30,
        choices=ActionType.choices,
        db_index=True,
    )
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_logs",
    )
    actor_type = models.CharField(
        max_length=20,
        choices=ActorType.choices,
        default=ActorType.USER,
    )
    old_values = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)
    new_values = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)
    metadata = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    timestamp = models.DateTimeField(default=timezone.now, db_index=True)
    severity_level = models.CharField(
        max_length=10,
        choices=Severity.choices,
        default=Severity.INFO,
    )
    is_sensitive = models.BooleanField(default=False)

    class Meta:
        verbose_name = "Audit Log"
        verbose_name_plural = "Audit Logs"
        ordering = ["-timestamp", "-id"]
        indexes = [
            models.Index(fields=["entity_type", "entity_id"]),
        ]
        permissions = [
            (AuditPerms.CAN_VIEW_AUDIT_TRAIL, "Can browse audit logs and report trails"),
        ]

    def __str__(self):
        return f"[{self.timestamp:%Y-%m-%d %H:%M:%S}] {self.entity_type}:{self.entity_id} {self.action_type}"


class ReportAuditTrail(AppendOnlyModel):
    """Join row tying an ``AuditLog`` entry to a report field change."""

    report = models.ForeignKey(
        "reports.Report",
        on_delete=models.PROTECT,
        related_name="audit_trail",
    )
    audit_log = models.ForeignKey(
        AuditLog,
        on_delete=models.PROTECT,
        related_name="report_links",
    )
    field_changed = models.CharField(max_length=100, blank=True, default="")
    previous_value = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)
    new_value = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)
    change_reason = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        verbose_name = "Report Audit Trail Entry"
        verbose_name_plural = "Report Audit Trail"
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"{self.report_id} {self.field_changed or self.audit_log.action_type}"
