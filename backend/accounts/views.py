"""
Accounts app views.

All views follow the **Thin View** pattern: validate input via
serializers, delegate to the service layer, and return the result
wrapped in a DRF ``Response``.

View Map
--------
- ``LoginView`` — POST /auth/login/
- ``MeView``    — GET /me/
"""

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    CustomTokenObtainPairSerializer,
    TokenResponseSerializer,
    UserDetailSerializer,
)
from .services import CurrentUserService


class LoginView(APIView):
    """
    POST /api/accounts/auth/login/

    Public endpoint.  Authenticates a user via username, email or phone
    number plus password and returns a JWT pair with the user profile.
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="Log in",
        request=CustomTokenObtainPairSerializer,
        responses={200: TokenResponseSerializer},
        tags=["Auth"],
    )
    def post(self, request: Request) -> Response:
        serializer = CustomTokenObtainPairSerializer(
            data=request.data,
            context={"request": request},
        )
        serializer.is_valid(raise_exception=True)

        payload = dict(serializer.validated_data)
        payload["user"] = UserDetailSerializer(serializer.user).data
        return Response(payload, status=status.HTTP_200_OK)


class MeView(APIView):
    """
    GET /api/accounts/me/

    The authenticated user's profile, role, and flat permission list.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Current user",
        responses={200: UserDetailSerializer},
        tags=["Auth"],
    )
    def get(self, request: Request) -> Response:
        user = CurrentUserService.get_profile(request.user)
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)
