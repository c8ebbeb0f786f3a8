"""
Reports app models.

A ``Report`` is a single citizen-submitted incident.  It is created once
by the intake service and afterwards only moves forward through its
workflow ``status``; reports are never hard-deleted.

``serial_number`` is the only identifier shown to the public.  It is
unique, and once a row is saved with a serial it cannot be changed.
"""

import uuid

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.db.models import Q

from core.domain.exceptions import Conflict
from core.models import TimeStampedModel
from core.permissions_constants import ReportsPerms


class ReportStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    ASSIGNED = "assigned", "Assigned"
    ACCEPTED = "accepted", "Accepted"
    RESPONDED_TO = "responded_to", "Responded To"
    RESOLVED = "resolved", "Resolved"


class Urgency(models.TextChoices):
    """Shared by ``urgency`` and ``priority``."""

    LOW = "low", "Low"
    MEDIUM = "medium", "Medium"
    HIGH = "high", "High"
    CRITICAL = "critical", "Critical"


class ValidationStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    VALIDATED = "validated", "Validated"
    REJECTED = "rejected", "Rejected"


class FileCategory(models.TextChoices):
    IMAGE = "image", "Image"
    VIDEO = "video", "Video"
    DOCUMENT = "document", "Document"


class ScanStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CLEAN = "clean", "Clean"
    SUSPICIOUS = "suspicious", "Suspicious"
    INFECTED = "infected", "Infected"
    REJECTED = "rejected", "Rejected"
    ERROR = "error", "Error"


class Report(TimeStampedModel):
    """
    Citizen incident report.

    Anonymous reports (the default) carry no reporter identity; the
    database refuses a row that is anonymous but has any reporter field
    set.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    serial_number = models.CharField(
        max_length=32,
        unique=True,
        editable=False,
        verbose_name="Serial Number",
        help_text="Public tracking reference, e.g. DHQ-2026-004217.",
    )

    # ── Incident ────────────────────────────────────────────────────
    description = models.TextField(verbose_name="Description")
    threat_type = models.CharField(max_length=100, verbose_name="Threat Type")

    # ── Location ────────────────────────────────────────────────────
    state = models.CharField(max_length=100, db_index=True)
    location = models.CharField(max_length=255, blank=True, default="")
    local_government = models.CharField(max_length=150, blank=True, default="")
    full_address = models.TextField(blank=True, default="")
    landmark = models.CharField(max_length=255, blank=True, default="")
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    location_accuracy = models.FloatField(
        null=True,
        blank=True,
        help_text="Reported GPS accuracy in metres.",
    )
    manual_location = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Free-text location typed by the reporter.",
    )

    # ── Workflow ────────────────────────────────────────────────────
    status = models.CharField(
        max_length=20,
        choices=ReportStatus.choices,
        default=ReportStatus.PENDING,
        db_index=True,
    )
    urgency = models.CharField(
        max_length=10,
        choices=Urgency.choices,
        default=Urgency.MEDIUM,
    )
    priority = models.CharField(
        max_length=10,
        choices=Urgency.choices,
        default=Urgency.MEDIUM,
        db_index=True,
    )
    validation_status = models.CharField(
        max_length=10,
        choices=ValidationStatus.choices,
        default=ValidationStatus.PENDING,
    )

    # ── Reporter ────────────────────────────────────────────────────
    is_anonymous = models.BooleanField(default=True)
    reporter_name = models.CharField(max_length=255, null=True, blank=True)
    reporter_contact = models.CharField(max_length=255, null=True, blank=True)
    reporter_phone = models.CharField(max_length=30, null=True, blank=True)
    reporter_email = models.EmailField(null=True, blank=True)
    reporter_type = models.CharField(max_length=30, default="external_portal")

    # ── Attachments (storage URLs) ──────────────────────────────────
    images = models.JSONField(default=list, blank=True)
    videos = models.JSONField(default=list, blank=True)
    documents = models.JSONField(default=list, blank=True)

    metadata = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)

    class Meta:
        verbose_name = "Report"
        verbose_name_plural = "Reports"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "priority"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(is_anonymous=False)
                    | Q(
                        reporter_name__isnull=True,
                        reporter_contact__isnull=True,
                        reporter_phone__isnull=True,
                        reporter_email__isnull=True,
                    )
                ),
                name="report_anonymous_has_no_reporter",
            ),
        ]
        permissions = [
            (ReportsPerms.CAN_VALIDATE_REPORT, "Can validate or reject incoming reports"),
            (ReportsPerms.CAN_SCOPE_ALL_REPORTS, "Can see every report"),
            (ReportsPerms.CAN_SCOPE_ASSIGNED_REPORTS, "Can see reports assigned to own unit"),
        ]

    def __str__(self):
        return f"{self.serial_number} [{self.status}]"

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        if "serial_number" in field_names:
            instance._persisted_serial = values[field_names.index("serial_number")]
        return instance

    def save(self, *args, **kwargs):
        persisted = getattr(self, "_persisted_serial", None)
        if not self._state.adding and persisted and self.serial_number != persisted:
            raise Conflict(
                f"Serial number {persisted} is immutable and cannot be changed."
            )
        super().save(*args, **kwargs)
        self._persisted_serial = self.serial_number

    @property
    def attachment_urls(self) -> list[tuple[str, str]]:
        """``[(category, url), ...]`` across all attachment lists."""
        return (
            [(FileCategory.IMAGE, url) for url in self.images]
            + [(FileCategory.VIDEO, url) for url in self.videos]
            + [(FileCategory.DOCUMENT, url) for url in self.documents]
        )


class FileScanResult(TimeStampedModel):
    """Outcome of the security scan of one attached file."""

    report = models.ForeignKey(
        Report,
        on_delete=models.CASCADE,
        related_name="scan_results",
    )
    file_url = models.CharField(max_length=500)
    file_type = models.CharField(
        max_length=100,
        help_text="MIME type recorded at upload.",
    )
    category = models.CharField(max_length=10, choices=FileCategory.choices)
    file_size = models.PositiveBigIntegerField(null=True, blank=True)
    status = models.CharField(
        max_length=12,
        choices=ScanStatus.choices,
        default=ScanStatus.PENDING,
        db_index=True,
    )
    threats = models.JSONField(default=list, blank=True)
    scanner = models.CharField(max_length=100, blank=True, default="")
    scanned_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = "File Scan Result"
        verbose_name_plural = "File Scan Results"
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.file_url} → {self.status}"
