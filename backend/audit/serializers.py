"""
Audit app serializers.  Read-only: audit rows are never written
through the API.
"""

from __future__ import annotations

from rest_framework import serializers

from .models import AuditLog, ReportAuditTrail


class AuditLogSerializer(serializers.ModelSerializer):
    actor_username = serializers.CharField(
        source="actor.username",
        read_only=True,
        default=None,
    )

    class Meta:
        model = AuditLog
        fields = [
            "id",
            "entity_type",
            "entity_id",
            "action_type",
            "actor",
            "actor_username",
            "actor_type",
            "old_values",
            "new_values",
            "metadata",
            "timestamp",
            "severity_level",
            "is_sensitive",
        ]
        read_only_fields = fields


class ReportAuditTrailSerializer(serializers.ModelSerializer):
    action_type = serializers.CharField(source="audit_log.action_type", read_only=True)
    entity_type = serializers.CharField(source="audit_log.entity_type", read_only=True)
    actor_type = serializers.CharField(source="audit_log.actor_type", read_only=True)
    actor_username = serializers.CharField(
        source="audit_log.actor.username",
        read_only=True,
        default=None,
    )

    class Meta:
        model = ReportAuditTrail
        fields = [
            "id",
            "report",
            "audit_log",
            "entity_type",
            "action_type",
            "actor_type",
            "actor_username",
            "field_changed",
            "previous_value",
            "new_value",
            "change_reason",
            "created_at",
        ]
        read_only_fields = fields


class AuditLogFilterSerializer(serializers.Serializer):
    entity_type = serializers.CharField(required=False)
    entity_id = serializers.CharField(required=False)
    action_type = serializers.CharField(required=False)
    severity_level = serializers.CharField(required=False)
    actor_type = serializers.CharField(required=False)
    since = serializers.DateTimeField(required=False)
