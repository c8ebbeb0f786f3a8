"""
Reports app ViewSets.

Views stay thin: validate with a serializer, delegate to a service,
serialize the result.

Public endpoints
----------------
``submit`` and ``track`` accept anonymous callers; every other action
requires an authenticated staff user whose permissions are checked in
the service layer.
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from audit.serializers import ReportAuditTrailSerializer
from audit.services import AuditTrailRecorder

from .serializers import (
    FileScanResultSerializer,
    ReportDetailSerializer,
    ReportFilterSerializer,
    ReportListSerializer,
    ReportSubmitResponseSerializer,
    ReportSubmitSerializer,
    ReportTrackSerializer,
    ReportValidateSerializer,
)
from .services import ReportIntakeService, ReportQueryService, ReportValidationService

logger = logging.getLogger(__name__)


def _client_ip(request: Request) -> str | None:
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR")


class ReportViewSet(viewsets.ViewSet):
    """
    /api/reports/ endpoints.

    Uses ``viewsets.ViewSet`` so only the explicitly defined actions are
    exposed; reports are never updated or deleted through the API.
    """

    permission_classes = [IsAuthenticated]

    # ── Public ───────────────────────────────────────────────────────

    @extend_schema(
        summary="Submit an incident report",
        description=(
            "Public endpoint. Accepts JSON or multipart form data; "
            "attachments are sent as repeated 'files' parts. "
            "A failing attachment upload is skipped, not fatal."
        ),
        request=ReportSubmitSerializer,
        responses={
            201: OpenApiResponse(response=ReportSubmitResponseSerializer, description="Report accepted."),
            400: OpenApiResponse(description="Validation error with field-level errors."),
            409: OpenApiResponse(description="No serial number could be allocated."),
        },
        tags=["Reports"],
    )
    @action(
        detail=False,
        methods=["post"],
        url_path="submit",
        permission_classes=[AllowAny],
        parser_classes=[MultiPartParser, FormParser, JSONParser],
    )
    def submit(self, request: Request) -> Response:
        """POST /api/reports/submit/"""
        serializer = ReportSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        actor = request.user if request.user and request.user.is_authenticated else None
        report = ReportIntakeService().submit(
            serializer.validated_data,
            request.FILES.getlist("files"),
            actor=actor,
            context={
                "user_agent": request.META.get("HTTP_USER_AGENT", ""),
                "ip_address": _client_ip(request),
            },
        )
        body = {
            "success": True,
            "report_id": report.pk,
            "serial_number": report.serial_number,
            "status": report.status,
            "message": (
                "Report submitted successfully. Keep your serial number "
                "to track its progress."
            ),
        }
        return Response(ReportSubmitResponseSerializer(body).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Track a report by serial number",
        responses={
            200: OpenApiResponse(response=ReportTrackSerializer, description="Current status."),
            404: OpenApiResponse(description="Unknown serial number."),
        },
        tags=["Reports"],
    )
    @action(
        detail=False,
        methods=["get"],
        url_path=r"track/(?P<serial_number>[A-Za-z0-9-]+)",
        permission_classes=[AllowAny],
    )
    def track(self, request: Request, serial_number: str = None) -> Response:
        """GET /api/reports/track/{serial_number}/"""
        report = ReportQueryService.track(serial_number)
        return Response(ReportTrackSerializer(report).data, status=status.HTTP_200_OK)

    # ── Staff ────────────────────────────────────────────────────────

    @extend_schema(
        summary="Triage queue",
        description="Reports visible to the caller, most urgent first, oldest first within a level.",
        parameters=[
            OpenApiParameter(name="status", type=str, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="urgency", type=str, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="priority", type=str, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="validation_status", type=str, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="state", type=str, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="serial_number", type=str, location=OpenApiParameter.QUERY),
        ],
        responses={200: ReportListSerializer(many=True)},
        tags=["Reports"],
    )
    def list(self, request: Request) -> Response:
        """GET /api/reports/"""
        filters = ReportFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        qs = ReportQueryService.get_triage_queue(request.user, filters.validated_data)
        return Response(ReportListSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Report detail",
        responses={
            200: ReportDetailSerializer,
            404: OpenApiResponse(description="Not found or not visible to the caller."),
        },
        tags=["Reports"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        """GET /api/reports/{id}/"""
        report = ReportQueryService.get_report(request.user, pk)
        return Response(ReportDetailSerializer(report).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Validate or reject a report",
        description="Sets validation_status only; the workflow status is unchanged.",
        request=ReportValidateSerializer,
        responses={
            200: ReportDetailSerializer,
            403: OpenApiResponse(description="Missing validation permission."),
            409: OpenApiResponse(description="Report was already validated or rejected."),
        },
        tags=["Reports"],
    )
    @action(detail=True, methods=["post"], url_path="validate")
    def validate(self, request: Request, pk: str = None) -> Response:
        """POST /api/reports/{id}/validate/"""
        serializer = ReportValidateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = ReportValidationService.set_validation(
            pk,
            serializer.validated_data["decision"],
            request.user,
            notes=serializer.validated_data["notes"],
        )
        return Response(ReportDetailSerializer(report).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="File scan results",
        responses={200: FileScanResultSerializer(many=True)},
        tags=["Reports"],
    )
    @action(detail=True, methods=["get"], url_path="scans")
    def scans(self, request: Request, pk: str = None) -> Response:
        """GET /api/reports/{id}/scans/"""
        report = ReportQueryService.get_report(request.user, pk)
        results = report.scan_results.order_by("created_at")
        return Response(FileScanResultSerializer(results, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Report audit trail",
        description="Audit entries linked to this report, oldest first.",
        responses={200: ReportAuditTrailSerializer(many=True)},
        tags=["Reports"],
    )
    @action(detail=True, methods=["get"], url_path="audit-trail")
    def audit_trail(self, request: Request, pk: str = None) -> Response:
        """GET /api/reports/{id}/audit-trail/"""
        report = ReportQueryService.get_report(request.user, pk)
        trail = AuditTrailRecorder.get_trail(report.pk, requesting_user=request.user)
        return Response(ReportAuditTrailSerializer(trail, many=True).data, status=status.HTTP_200_OK)
