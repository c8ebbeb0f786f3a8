"""
Accounts app serializers.

Request and response serializers for login and the "me" endpoint.
**No business logic** lives here — all domain rules are delegated to
``services.py``.
"""

from __future__ import annotations

from typing import Any

from django.contrib.auth import authenticate, get_user_model
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .models import Role

User = get_user_model()


# ═══════════════════════════════════════════════════════════════════
#  Authentication Serializers
# ═══════════════════════════════════════════════════════════════════


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Custom SimpleJWT serializer that:

    1. Accepts ``identifier`` + ``password`` instead of
       ``username`` + ``password``.
    2. Resolves the user via the ``MultiFieldAuthBackend``.
    3. Injects RBAC claims (``role``, ``permissions_list``) into the
       access token payload.
    """

    username_field = "identifier"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields.pop(self.username_field, None)
        self.fields["identifier"] = serializers.CharField(
            help_text="Username, email, or phone number.",
        )

    @classmethod
    def get_token(cls, user) -> Any:
        token = super().get_token(user)
        token["role"] = user.role.name if user.role else None
        token["permissions_list"] = user.permissions_list
        return token

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        """
        Authenticate using the custom ``MultiFieldAuthBackend``.

        Returns a dict containing ``access`` and ``refresh``; the
        authenticated user is left on ``self.user`` for the view.
        """
        user = authenticate(
            request=self.context.get("request"),
            identifier=attrs.get("identifier"),
            password=attrs.get("password"),
        )

        if user is None:
            raise serializers.ValidationError(
                {"detail": "Invalid credentials."},
                code="authentication",
            )

        refresh = self.get_token(user)
        self.user = user
        return {
            "access": str(refresh.access_token),
            "refresh": str(refresh),
        }


# ═══════════════════════════════════════════════════════════════════
#  User Serializers
# ═══════════════════════════════════════════════════════════════════


class RoleListSerializer(serializers.ModelSerializer):
    class Meta:
        model = Role
        fields = ["id", "name", "description", "hierarchy_level"]
        read_only_fields = fields


class UserDetailSerializer(serializers.ModelSerializer):
    """
    Full user representation (used by login and "me").  Includes the
    nested role object and a flat permissions list the dashboard uses
    to decide which modules to render.
    """

    role_detail = RoleListSerializer(source="role", read_only=True)
    permissions = serializers.ListField(
        child=serializers.CharField(),
        source="permissions_list",
        read_only=True,
        help_text="Flat list of 'app_label.codename' permission strings.",
    )

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "phone_number",
            "first_name",
            "last_name",
            "is_active",
            "date_joined",
            "role",
            "role_detail",
            "permissions",
        ]
        read_only_fields = fields


class TokenResponseSerializer(serializers.Serializer):
    """Schema-only: the JWT pair plus the logged-in user."""

    access = serializers.CharField(read_only=True)
    refresh = serializers.CharField(read_only=True)
    user = UserDetailSerializer(read_only=True)
