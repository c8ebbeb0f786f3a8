"""
Accounts Service Layer.

Business logic for the ``accounts`` app.  Views stay *thin*: they
validate input through serializers, call a service method, and return
the result wrapped in a DRF ``Response``.

Architecture
------------
- ``CurrentUserService`` — "Me" endpoint helpers.
- ``RoleService``        — role lookup used by other apps (commander
                           onboarding needs the "Unit Commander" role).
"""

from __future__ import annotations

import logging

from django.contrib.auth import get_user_model

from .models import Role

logger = logging.getLogger(__name__)

User = get_user_model()

#: Role names seeded by ``setup_rbac``.
ADMINISTRATOR_ROLE = "Administrator"
UNIT_COMMANDER_ROLE = "Unit Commander"


# ═══════════════════════════════════════════════════════════════════
#  Current User Service
# ═══════════════════════════════════════════════════════════════════


class CurrentUserService:
    """Helpers for the "Me" endpoint."""

    @staticmethod
    def get_profile(user: User) -> User:
        """
        Return the user with role and permissions pre-fetched so that
        ``UserDetailSerializer`` renders without N+1 queries.
        """
        return (
            User.objects.select_related("role")
            .prefetch_related("role__permissions__content_type")
            .get(pk=user.pk)
        )


# ═══════════════════════════════════════════════════════════════════
#  Role Service
# ═══════════════════════════════════════════════════════════════════


class RoleService:

    @staticmethod
    def get_or_create_role(name: str, *, hierarchy_level: int = 0, description: str = "") -> Role:
        """
        Case-insensitive lookup; creates an empty role when missing so
        that onboarding works before ``setup_rbac`` has been run.
        """
        try:
            return Role.objects.get(name__iexact=name)
        except Role.DoesNotExist:
            logger.warning(
                "Role %r missing; creating it without permissions. "
                "Run `manage.py setup_rbac` to attach permissions.",
                name,
            )
            return Role.objects.create(
                name=name,
                hierarchy_level=hierarchy_level,
                description=description,
            )

    @staticmethod
    def commander_role() -> Role:
        return RoleService.get_or_create_role(
            UNIT_COMMANDER_ROLE,
            hierarchy_level=10,
            description="Field unit commander who responds to assigned reports.",
        )
