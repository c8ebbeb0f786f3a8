"""
Core app views — **Thin Views**.

Each view delegates to the corresponding service in ``core.services``
and only extracts parameters, calls the service and serialises the
result.  No model imports, no aggregation logic.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    NotificationSerializer,
    SystemConstantsSerializer,
    SystemMetricSerializer,
)
from .services import NotificationService, SystemConstantsService, SystemMetricsService


class SystemMetricsView(APIView):
    """
    **GET /api/core/metrics/**

    Dashboard counters maintained by ``SystemMetricsService``.  Requires
    ``core.can_view_system_metrics`` (checked in the service).
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Dashboard metrics",
        description="Report and operation counters, refreshed after every committed change.",
        responses={
            200: OpenApiResponse(response=SystemMetricSerializer, description="Current counters."),
            403: OpenApiResponse(description="Missing metrics permission."),
        },
        tags=["Dashboard"],
    )
    def get(self, request: Request) -> Response:
        metric = SystemMetricsService.get_metrics(request.user)
        return Response(SystemMetricSerializer(metric).data, status=status.HTTP_200_OK)


class SystemConstantsView(APIView):
    """
    **GET /api/core/constants/**

    Choice enumerations and the role hierarchy.  Public configuration
    data (``AllowAny``).
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="System constants",
        description=(
            "Return the portal's choice enumerations and the role hierarchy "
            "so the frontend can build dropdowns, filters, and labels."
        ),
        responses={200: OpenApiResponse(response=SystemConstantsSerializer, description="System constants.")},
        tags=["System"],
    )
    def get(self, request: Request) -> Response:
        data = SystemConstantsService.get_constants()
        return Response(SystemConstantsSerializer(data).data, status=status.HTTP_200_OK)


class NotificationViewSet(viewsets.ViewSet):
    """
    **Notification API** — list and mark-as-read for the authenticated user.

    Endpoints
    ---------
    GET  /api/core/notifications/              → list notifications
    POST /api/core/notifications/{id}/read/    → mark a notification as read
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List notifications",
        description="Return the authenticated user's notifications, newest first.",
        parameters=[
            OpenApiParameter(
                name="unread",
                type=bool,
                location=OpenApiParameter.QUERY,
                description="Only unread notifications when true.",
            ),
        ],
        responses={200: OpenApiResponse(response=NotificationSerializer(many=True), description="Notification list.")},
        tags=["Notifications"],
    )
    def list(self, request: Request) -> Response:
        unread_only = request.query_params.get("unread", "").lower() in ("1", "true", "yes")
        notifications = NotificationService(user=request.user).list_notifications(unread_only=unread_only)
        serializer = NotificationSerializer(notifications, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Mark notification as read",
        request=None,
        responses={
            200: OpenApiResponse(response=NotificationSerializer, description="Updated notification."),
            404: OpenApiResponse(description="No such notification for this user."),
        },
        tags=["Notifications"],
    )
    @action(detail=True, methods=["post"], url_path="read")
    def mark_as_read(self, request: Request, pk: str = None) -> Response:
        notification = NotificationService(user=request.user).mark_as_read(notification_id=pk)
        return Response(NotificationSerializer(notification).data, status=status.HTTP_200_OK)
