"""
Assignments app ViewSets.

Thin views: serializer → ``AssignmentService`` → ``AssignmentSerializer``.
Permission and ownership checks happen in the service layer.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from .serializers import (
    AssignmentFilterSerializer,
    AssignmentSerializer,
    AssignReportSerializer,
    ResolutionOutcomeSerializer,
    RespondSerializer,
    ReturnForRevisionSerializer,
)
from .services import AssignmentService

_CONFLICT = OpenApiResponse(description="Illegal transition for the current status.")


class AssignmentViewSet(viewsets.ViewSet):

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List assignments",
        description="HQ staff see every assignment; commanders see their own.",
        parameters=[
            OpenApiParameter(name="status", type=str, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="report", type=str, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="commander", type=int, location=OpenApiParameter.QUERY),
        ],
        responses={200: AssignmentSerializer(many=True)},
        tags=["Assignments"],
    )
    def list(self, request: Request) -> Response:
        filters = AssignmentFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        qs = AssignmentService.list_assignments(request.user, filters.validated_data)
        return Response(AssignmentSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Retrieve an assignment",
        responses={200: AssignmentSerializer, 404: OpenApiResponse(description="Not found.")},
        tags=["Assignments"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        assignment = AssignmentService.get_assignment(request.user, pk)
        return Response(AssignmentSerializer(assignment).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Assign a report to a commander",
        request=AssignReportSerializer,
        responses={
            201: AssignmentSerializer,
            403: OpenApiResponse(description="Missing assignment permission."),
            404: OpenApiResponse(description="Report or commander not found."),
            409: OpenApiResponse(description="Report already assigned, resolved, or commander inactive."),
        },
        tags=["Assignments"],
    )
    def create(self, request: Request) -> Response:
        """POST /api/assignments/"""
        serializer = AssignReportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        assignment = AssignmentService.assign(
            data["report_id"],
            data["commander_id"],
            request.user,
            unit=data.get("unit") or None,
        )
        return Response(AssignmentSerializer(assignment).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Accept or mark responded",
        request=RespondSerializer,
        responses={200: AssignmentSerializer, 409: _CONFLICT},
        tags=["Assignments"],
    )
    @action(detail=True, methods=["post"], url_path="respond")
    def respond(self, request: Request, pk: str = None) -> Response:
        serializer = RespondSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        assignment = AssignmentService.respond(pk, serializer.validated_data["status"], request.user)
        return Response(AssignmentSerializer(assignment).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Submit a resolution for review",
        request=ResolutionOutcomeSerializer,
        responses={200: AssignmentSerializer, 409: _CONFLICT},
        tags=["Assignments"],
    )
    @action(detail=True, methods=["post"], url_path="submit-resolution")
    def submit_resolution(self, request: Request, pk: str = None) -> Response:
        serializer = ResolutionOutcomeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        assignment = AssignmentService.submit_resolution(pk, serializer.validated_data, request.user)
        return Response(AssignmentSerializer(assignment).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Resolve an assignment",
        request=ResolutionOutcomeSerializer,
        responses={200: AssignmentSerializer, 409: _CONFLICT},
        tags=["Assignments"],
    )
    @action(detail=True, methods=["post"], url_path="resolve")
    def resolve(self, request: Request, pk: str = None) -> Response:
        serializer = ResolutionOutcomeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        assignment = AssignmentService.resolve(pk, serializer.validated_data, request.user)
        return Response(AssignmentSerializer(assignment).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Return a resolution for revision",
        request=ReturnForRevisionSerializer,
        responses={200: AssignmentSerializer, 409: _CONFLICT},
        tags=["Assignments"],
    )
    @action(detail=True, methods=["post"], url_path="return-for-revision")
    def return_for_revision(self, request: Request, pk: str = None) -> Response:
        serializer = ReturnForRevisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        assignment = AssignmentService.return_for_revision(
            pk, serializer.validated_data["reason"], request.user,
        )
        return Response(AssignmentSerializer(assignment).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Resubmit a revised resolution",
        request=ResolutionOutcomeSerializer,
        responses={200: AssignmentSerializer, 409: _CONFLICT},
        tags=["Assignments"],
    )
    @action(detail=True, methods=["post"], url_path="resubmit")
    def resubmit(self, request: Request, pk: str = None) -> Response:
        serializer = ResolutionOutcomeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        assignment = AssignmentService.resubmit(pk, serializer.validated_data, request.user)
        return Response(AssignmentSerializer(assignment).data, status=status.HTTP_200_OK)
