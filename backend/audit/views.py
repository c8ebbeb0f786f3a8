"""
Audit app views — read-only browsing of the audit log.

The per-report trail is exposed from the reports app
(``GET /api/reports/{id}/audit-trail/``); this module serves the global
log for administrators.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from .serializers import AuditLogFilterSerializer, AuditLogSerializer
from .services import AuditTrailRecorder


class AuditLogViewSet(viewsets.ViewSet):
    """
    GET /api/audit/logs/        → list (filterable)
    GET /api/audit/logs/{id}/   → retrieve
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List audit log entries",
        parameters=[
            OpenApiParameter("entity_type", str),
            OpenApiParameter("entity_id", str),
            OpenApiParameter("action_type", str),
            OpenApiParameter("severity_level", str),
            OpenApiParameter("actor_type", str),
            OpenApiParameter("since", str, description="ISO-8601 lower bound."),
        ],
        responses={200: AuditLogSerializer(many=True)},
        tags=["Audit"],
    )
    def list(self, request: Request) -> Response:
        filters = AuditLogFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        qs = AuditTrailRecorder.list_logs(request.user, filters.validated_data)
        return Response(AuditLogSerializer(qs[:500], many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Retrieve an audit log entry",
        responses={200: AuditLogSerializer},
        tags=["Audit"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        entry = AuditTrailRecorder.get_log(request.user, pk)
        return Response(AuditLogSerializer(entry).data, status=status.HTTP_200_OK)
