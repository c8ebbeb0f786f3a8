"""
Reports app serializers.

Field typing and request-shape checks live here.  The submission rules
themselves are owned by ``ReportIntakeService.validate_payload`` so the
API and non-HTTP callers enforce exactly the same thing.

Structure
---------
1. Submission (public) request / response
2. Public tracking
3. Staff read serializers (list, detail, scans)
4. Filter and action serializers
"""

from __future__ import annotations

from typing import Any

from rest_framework import serializers

from core.domain.exceptions import ValidationFailed

from .models import FileScanResult, Report, ReportStatus, Urgency, ValidationStatus
from .services import ReportIntakeService


# ═══════════════════════════════════════════════════════════════════
#  1. Submission
# ═══════════════════════════════════════════════════════════════════


class ReportSubmitSerializer(serializers.Serializer):
    """
    Validates ``POST /api/reports/submit/``.

    Accepts JSON or multipart.  Attachments arrive as repeated ``files``
    parts and are read by the view from ``request.FILES``.
    """

    description = serializers.CharField(trim_whitespace=True, allow_blank=True, required=False)
    threat_type = serializers.CharField(max_length=100, allow_blank=True, required=False)
    state = serializers.CharField(max_length=100, allow_blank=True, required=False)
    urgency = serializers.CharField(max_length=10, required=False, allow_blank=True)
    priority = serializers.CharField(max_length=10, required=False, allow_blank=True)

    location = serializers.CharField(max_length=255, required=False, allow_blank=True)
    local_government = serializers.CharField(max_length=150, required=False, allow_blank=True)
    full_address = serializers.CharField(required=False, allow_blank=True)
    landmark = serializers.CharField(max_length=255, required=False, allow_blank=True)
    manual_location = serializers.CharField(max_length=255, required=False, allow_blank=True)
    latitude = serializers.DecimalField(
        max_digits=9, decimal_places=6, required=False, allow_null=True,
        min_value=-90, max_value=90,
    )
    longitude = serializers.DecimalField(
        max_digits=9, decimal_places=6, required=False, allow_null=True,
        min_value=-180, max_value=180,
    )
    location_accuracy = serializers.FloatField(required=False, allow_null=True, min_value=0)

    # Nullable so an omitted multipart field reads as "unset" (anonymous), not False.
    is_anonymous = serializers.BooleanField(required=False, allow_null=True)
    reporter_name = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    reporter_contact = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    reporter_phone = serializers.CharField(max_length=30, required=False, allow_blank=True, allow_null=True)
    reporter_email = serializers.EmailField(required=False, allow_blank=True, allow_null=True)

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        try:
            return ReportIntakeService.validate_payload(attrs)
        except ValidationFailed as exc:
            raise serializers.ValidationError(exc.errors)


class ReportSubmitResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    report_id = serializers.UUIDField()
    serial_number = serializers.CharField()
    status = serializers.CharField()
    message = serializers.CharField()


# ═══════════════════════════════════════════════════════════════════
#  2. Public Tracking
# ═══════════════════════════════════════════════════════════════════


class ReportTrackSerializer(serializers.ModelSerializer):
    """What an anonymous reporter may see: no location, no identity."""

    status_display = serializers.CharField(source="get_status_display", read_only=True)

    class Meta:
        model = Report
        fields = [
            "serial_number",
            "status",
            "status_display",
            "urgency",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


# ═══════════════════════════════════════════════════════════════════
#  3. Staff Read Serializers
# ═══════════════════════════════════════════════════════════════════


class ReportListSerializer(serializers.ModelSerializer):
    attachment_count = serializers.SerializerMethodField()

    class Meta:
        model = Report
        fields = [
            "id",
            "serial_number",
            "threat_type",
            "state",
            "location",
            "status",
            "urgency",
            "priority",
            "validation_status",
            "is_anonymous",
            "attachment_count",
            "created_at",
        ]
        read_only_fields = fields

    def get_attachment_count(self, obj: Report) -> int:
        return len(obj.attachment_urls)


class ReportDetailSerializer(serializers.ModelSerializer):
    class Meta:
        model = Report
        fields = [
            "id",
            "serial_number",
            "description",
            "threat_type",
            "state",
            "location",
            "local_government",
            "full_address",
            "landmark",
            "latitude",
            "longitude",
            "location_accuracy",
            "manual_location",
            "status",
            "urgency",
            "priority",
            "validation_status",
            "is_anonymous",
            "reporter_name",
            "reporter_contact",
            "reporter_phone",
            "reporter_email",
            "reporter_type",
            "images",
            "videos",
            "documents",
            "metadata",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class FileScanResultSerializer(serializers.ModelSerializer):
    class Meta:
        model = FileScanResult
        fields = [
            "id",
            "file_url",
            "file_type",
            "category",
            "file_size",
            "status",
            "threats",
            "scanner",
            "scanned_at",
        ]
        read_only_fields = fields


# ═══════════════════════════════════════════════════════════════════
#  4. Filters & Actions
# ═══════════════════════════════════════════════════════════════════


class ReportFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ReportStatus.choices, required=False)
    urgency = serializers.ChoiceField(choices=Urgency.choices, required=False)
    priority = serializers.ChoiceField(choices=Urgency.choices, required=False)
    validation_status = serializers.ChoiceField(choices=ValidationStatus.choices, required=False)
    state = serializers.CharField(max_length=100, required=False)
    serial_number = serializers.CharField(max_length=32, required=False)


class ReportValidateSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(
        choices=[ValidationStatus.VALIDATED, ValidationStatus.REJECTED],
        help_text="'validated' or 'rejected'.",
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")
