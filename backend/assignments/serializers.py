"""
Assignments app serializers.

Request serializers validate shape and ranges only; workflow legality
is decided by ``AssignmentService``.
"""

from __future__ import annotations

from rest_framework import serializers

from .lifecycle import RESPOND_EVENTS
from .models import Assignment, AssignmentStatus


class AssignmentSerializer(serializers.ModelSerializer):
    report_serial_number = serializers.CharField(source="report.serial_number", read_only=True)
    report_status = serializers.CharField(source="report.status", read_only=True)
    commander_name = serializers.CharField(source="commander.full_name", read_only=True)
    status_display = serializers.CharField(source="get_status_display", read_only=True)

    class Meta:
        model = Assignment
        fields = [
            "id",
            "report",
            "report_serial_number",
            "report_status",
            "commander",
            "commander_name",
            "unit",
            "assigned_by",
            "assigned_at",
            "status",
            "status_display",
            "resolution_notes",
            "revision_reason",
            "resolved_by",
            "resolved_at",
            "casualties",
            "injured_personnel",
            "civilians_rescued",
            "weapons_recovered",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class AssignmentFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=AssignmentStatus.choices, required=False)
    report = serializers.UUIDField(required=False)
    commander = serializers.IntegerField(required=False, min_value=1)


class AssignReportSerializer(serializers.Serializer):
    """``POST /api/assignments/``"""

    report_id = serializers.UUIDField()
    commander_id = serializers.IntegerField(min_value=1)
    unit = serializers.CharField(max_length=150, required=False, allow_blank=True)


class RespondSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=list(RESPOND_EVENTS),
        help_text="'accepted' or 'responded_to'.",
    )


class ResolutionOutcomeSerializer(serializers.Serializer):
    """Notes plus optional outcome metrics, shared by every resolution action."""

    resolution_notes = serializers.CharField(required=False, allow_blank=True)
    casualties = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    injured_personnel = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    civilians_rescued = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    weapons_recovered = serializers.IntegerField(required=False, allow_null=True, min_value=0)


class ReturnForRevisionSerializer(serializers.Serializer):
    reason = serializers.CharField(
        allow_blank=False,
        trim_whitespace=True,
        help_text="Shown to the commander.",
    )
