"""
Core app serializers.

**Response-only** serializers for the endpoints served by the core app:
dashboard metrics, system constants and notifications.  The metrics and
constants serializers work with objects and dicts produced by
``core.services``; no other app's models are imported here.
"""

from __future__ import annotations

from rest_framework import serializers


# ════════════════════════════════════════════════════════════════════
#  Dashboard Metrics
# ════════════════════════════════════════════════════════════════════

class SystemMetricSerializer(serializers.Serializer):
    """
    Response serializer for ``GET /api/core/metrics/``.

    Response shape::

        {
            "total_reports": 120,
            "pending_reports": 14,
            "active_operations": 9,
            "resolved_reports": 97,
            "critical_open_reports": 2,
            "computed_at": "2026-03-01T10:15:00Z"
        }
    """

    total_reports = serializers.IntegerField(help_text="All reports ever submitted.")
    pending_reports = serializers.IntegerField(help_text="Reports awaiting assignment.")
    active_operations = serializers.IntegerField(help_text="Assignments not yet resolved.")
    resolved_reports = serializers.IntegerField(help_text="Reports closed as resolved.")
    critical_open_reports = serializers.IntegerField(
        help_text="Critical-urgency reports that are not resolved.",
    )
    computed_at = serializers.DateTimeField(help_text="When the counters were last refreshed.")


# ════════════════════════════════════════════════════════════════════
#  System Constants / Enums
# ════════════════════════════════════════════════════════════════════

class ChoiceItemSerializer(serializers.Serializer):
    """
    A single key-label pair representing one choice/enum option.

    Example::

        {"value": "responded_to", "label": "Responded To"}
    """

    value = serializers.CharField(
        help_text="Machine-readable value to send in API requests.",
    )
    label = serializers.CharField(
        help_text="Human-readable display label for the UI.",
    )


class RoleHierarchyItemSerializer(serializers.Serializer):
    id = serializers.IntegerField(help_text="Role PK.")
    name = serializers.CharField(help_text="Role display name.")
    hierarchy_level = serializers.IntegerField(
        help_text="Authority level (higher = more authority).",
    )


class SystemConstantsSerializer(serializers.Serializer):
    """
    Response serializer for ``GET /api/core/constants/``.

    Lets the frontend build dropdowns and labels without hardcoding
    enumeration values.
    """

    report_statuses = ChoiceItemSerializer(many=True)
    urgency_levels = ChoiceItemSerializer(many=True)
    validation_statuses = ChoiceItemSerializer(many=True)
    assignment_statuses = ChoiceItemSerializer(many=True)
    commander_statuses = ChoiceItemSerializer(many=True)
    role_hierarchy = RoleHierarchyItemSerializer(
        many=True,
        help_text="All roles with their hierarchy levels, ordered by authority.",
    )


# ════════════════════════════════════════════════════════════════════
#  Notifications
# ════════════════════════════════════════════════════════════════════

class NotificationSerializer(serializers.Serializer):
    """Read-only serializer for ``Notification`` instances."""

    id = serializers.IntegerField(read_only=True, help_text="Notification PK.")
    title = serializers.CharField(read_only=True)
    message = serializers.CharField(read_only=True)
    is_read = serializers.BooleanField(read_only=True)
    created_at = serializers.DateTimeField(read_only=True)
    content_type = serializers.StringRelatedField(
        read_only=True,
        help_text="Related content type (if any).",
    )
    object_id = serializers.CharField(
        read_only=True,
        allow_null=True,
        help_text="PK of the related object (if any); UUIDs for reports and assignments.",
    )
