"""
Assignments app models.

An ``Assignment`` hands one report to one unit commander and carries
the commander's progress and the final resolution.  A report has at
most one non-resolved assignment at a time; the partial unique
constraint below is the authority on that, the service-level check is
only there to produce a friendly error first.
"""

import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from core.models import TimeStampedModel
from core.permissions_constants import AssignmentsPerms


class AssignmentStatus(models.TextChoices):
    ASSIGNED = "assigned", "Assigned"
    ACCEPTED = "accepted", "Accepted"
    RESPONDED_TO = "responded_to", "Responded To"
    RETURNED_FOR_REVISION = "returned_for_revision", "Returned for Revision"
    RESOLVED = "resolved", "Resolved"


class Assignment(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    report = models.ForeignKey(
        "reports.Report",
        on_delete=models.PROTECT,
        related_name="assignments",
    )
    commander = models.ForeignKey(
        "commanders.UnitCommander",
        on_delete=models.PROTECT,
        related_name="assignments",
        verbose_name="Assigned Commander",
    )
    unit = models.CharField(
        max_length=150,
        blank=True,
        default="",
        help_text="Unit the report is dispatched to; defaults to the commander's unit.",
    )
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="assignments_made",
    )
    assigned_at = models.DateTimeField(default=timezone.now)
    status = models.CharField(
        max_length=25,
        choices=AssignmentStatus.choices,
        default=AssignmentStatus.ASSIGNED,
        db_index=True,
    )

    # ── Resolution ──────────────────────────────────────────────────
    resolution_notes = models.TextField(blank=True, default="")
    revision_reason = models.TextField(blank=True, default="")
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assignments_resolved",
    )
    resolved_at = models.DateTimeField(null=True, blank=True)

    # ── Outcome metrics ─────────────────────────────────────────────
    casualties = models.PositiveIntegerField(null=True, blank=True)
    injured_personnel = models.PositiveIntegerField(null=True, blank=True)
    civilians_rescued = models.PositiveIntegerField(null=True, blank=True)
    weapons_recovered = models.PositiveIntegerField(null=True, blank=True)

    class Meta:
        verbose_name = "Assignment"
        verbose_name_plural = "Assignments"
        ordering = ["-assigned_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["report"],
                condition=~Q(status="resolved"),
                name="one_open_assignment_per_report",
            ),
        ]
        permissions = [
            (AssignmentsPerms.CAN_ASSIGN_REPORT, "Can assign reports to unit commanders"),
            (AssignmentsPerms.CAN_REVIEW_RESOLUTION, "Can resolve or return submitted resolutions"),
            (AssignmentsPerms.CAN_RESPOND_TO_ASSIGNMENT, "Can respond to own assignments"),
            (AssignmentsPerms.CAN_SCOPE_ALL_ASSIGNMENTS, "Can see every assignment"),
        ]

    def __str__(self):
        return f"Assignment {self.id} ({self.status})"
