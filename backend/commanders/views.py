"""
Commanders app ViewSets.

Registration and status changes are HQ-only (checked in the service);
``password-setup`` is public because the caller has no password yet.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from .serializers import (
    CommanderFilterSerializer,
    CommanderRegistrationSerializer,
    CommanderStatusSerializer,
    PasswordSetupSerializer,
    UnitCommanderSerializer,
)
from .services import CommanderRegistrationService, CommanderService, PasswordSetupService


class CommanderViewSet(viewsets.ViewSet):

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List unit commanders",
        parameters=[
            OpenApiParameter(name="status", type=str, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="state", type=str, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="search", type=str, location=OpenApiParameter.QUERY),
        ],
        responses={200: UnitCommanderSerializer(many=True)},
        tags=["Commanders"],
    )
    def list(self, request: Request) -> Response:
        filters = CommanderFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        qs = CommanderService.list_commanders(request.user, filters.validated_data)
        return Response(UnitCommanderSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Retrieve a unit commander",
        responses={200: UnitCommanderSerializer, 404: OpenApiResponse(description="Not found.")},
        tags=["Commanders"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        commander = CommanderService.get_commander(pk, requesting_user=request.user)
        return Response(UnitCommanderSerializer(commander).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Register a unit commander",
        description="Creates the account and emails a one-time password-setup link.",
        request=CommanderRegistrationSerializer,
        responses={
            201: UnitCommanderSerializer,
            403: OpenApiResponse(description="Missing commander management permission."),
            409: OpenApiResponse(description="Email or service number already registered."),
        },
        tags=["Commanders"],
    )
    def create(self, request: Request) -> Response:
        serializer = CommanderRegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        commander = CommanderRegistrationService().register(serializer.validated_data, request.user)
        return Response(UnitCommanderSerializer(commander).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Change a commander's status",
        request=CommanderStatusSerializer,
        responses={200: UnitCommanderSerializer, 409: OpenApiResponse(description="Illegal status change.")},
        tags=["Commanders"],
    )
    @action(detail=True, methods=["post"], url_path="set-status")
    def set_status(self, request: Request, pk: str = None) -> Response:
        serializer = CommanderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        commander = CommanderService.set_status(pk, serializer.validated_data["status"], request.user)
        return Response(UnitCommanderSerializer(commander).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Resend the password-setup link",
        request=None,
        responses={202: OpenApiResponse(description="A new link was issued and emailed.")},
        tags=["Commanders"],
    )
    @action(detail=True, methods=["post"], url_path="resend-setup-link")
    def resend_setup_link(self, request: Request, pk: str = None) -> Response:
        token = CommanderService.resend_setup_link(pk, request.user)
        return Response(
            {"detail": "Password setup link sent.", "expires_at": token.expires_at},
            status=status.HTTP_202_ACCEPTED,
        )

    @extend_schema(
        summary="Complete password setup",
        description="Public. Redeems the one-time token from the setup email.",
        request=PasswordSetupSerializer,
        responses={
            200: OpenApiResponse(description="Password set; the commander can log in."),
            400: OpenApiResponse(description="Invalid or expired link, or weak password."),
        },
        tags=["Commanders"],
        auth=[],
    )
    @action(detail=False, methods=["post"], url_path="password-setup",
            permission_classes=[AllowAny], authentication_classes=[])
    def password_setup(self, request: Request) -> Response:
        serializer = PasswordSetupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        PasswordSetupService().complete(
            email=data["email"], token=data["token"], password=data["password"],
        )
        return Response(
            {"detail": "Password set successfully. You can now log in."},
            status=status.HTTP_200_OK,
        )
