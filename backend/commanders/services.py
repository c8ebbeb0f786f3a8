"""
Commanders Service Layer.

Architecture
------------
- ``CommanderRegistrationService`` — onboarding: user + profile +
  password-setup link email.
- ``PasswordSetupService``         — redeems a setup token.
- ``CommanderService``             — listing and status changes.

Setup tokens come from ``secrets.token_urlsafe`` and expire after the
configured TTL (one hour by default).  The token is single-use.
"""

from __future__ import annotations

import logging
import secrets
from typing import Any
from urllib.parse import urlencode

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.mail import send_mail
from django.db import IntegrityError, transaction
from django.db.models import QuerySet
from django.utils import timezone

from accounts.services import RoleService
from audit.models import ActionType, EntityType
from audit.services import AuditTrailRecorder
from core.config import PortalConfig
from core.domain.access import require_permission
from core.domain.exceptions import (
    Conflict,
    DomainError,
    InvalidTransition,
    NotFound,
    ValidationFailed,
)
from core.domain.notifications import NotificationService
from core.domain.transactions import lock_for_update
from core.permissions_constants import CommandersPerms

from .models import CommanderStatus, PasswordSetupToken, UnitCommander

logger = logging.getLogger(__name__)

User = get_user_model()

_MANAGE_PERM = f"commanders.{CommandersPerms.CAN_MANAGE_COMMANDERS}"
_VIEW_PERM = f"commanders.{CommandersPerms.VIEW_UNITCOMMANDER}"


def _commander_snapshot(commander: UnitCommander) -> dict[str, Any]:
    return {
        "full_name": commander.full_name,
        "email": commander.email,
        "service_number": commander.service_number,
        "rank": commander.rank,
        "unit": commander.unit,
        "state": commander.state,
        "status": commander.status,
    }


# ═══════════════════════════════════════════════════════════════════
#  Registration Service
# ═══════════════════════════════════════════════════════════════════


class CommanderRegistrationService:
    """Onboards a new unit commander."""

    def __init__(self, config: PortalConfig | None = None) -> None:
        self.config = config or PortalConfig.from_settings()

    def register(self, data: dict[str, Any], actor: Any) -> UnitCommander:
        """
        Create the commander's user account and profile, then email a
        password-setup link.

        Parameters
        ----------
        data : dict
            Validated fields from ``CommanderRegistrationSerializer``:
            ``full_name``, ``email``, ``service_number``, ``state`` and
            optionally ``phone_number``, ``rank``, ``unit``, ``category``.
        actor : User
            The administrator performing the registration.

        Returns
        -------
        UnitCommander

        Raises
        ------
        PermissionDenied
            Actor lacks ``can_manage_commanders``.
        Conflict
            Email or service number already registered.
        """
        require_permission(actor, _MANAGE_PERM)

        email = data["email"].strip().lower()
        if UnitCommander.objects.filter(email__iexact=email).exists() or \
                User.objects.filter(email__iexact=email).exists():
            raise Conflict(f"A commander with email {email} already exists.")
        if UnitCommander.objects.filter(service_number=data["service_number"]).exists():
            raise Conflict(
                f"Service number {data['service_number']} is already registered."
            )

        first_name, _, last_name = data["full_name"].strip().partition(" ")

        try:
            with transaction.atomic():
                user = User(
                    username=email,
                    email=email,
                    first_name=first_name,
                    last_name=last_name,
                    role=RoleService.commander_role(),
                )
                user.set_unusable_password()
                user.save()

                commander = UnitCommander.objects.create(
                    user=user,
                    full_name=data["full_name"].strip(),
                    email=email,
                    phone_number=data.get("phone_number", ""),
                    service_number=data["service_number"],
                    rank=data.get("rank", ""),
                    unit=data.get("unit", ""),
                    category=data.get("category", ""),
                    state=data["state"],
                    created_by=actor,
                )
                token = PasswordSetupService(self.config).issue_token(commander)

                AuditTrailRecorder.record(
                    entity_type=EntityType.COMMANDER,
                    entity_id=commander.pk,
                    action_type=ActionType.CREATE,
                    actor=actor,
                    new_values=_commander_snapshot(commander),
                )
                transaction.on_commit(
                    lambda: self.send_setup_email(commander, token)
                )
        except IntegrityError:
            raise Conflict("A commander with these details already exists.")

        logger.info(
            "Registered commander %s (service_number=%s) by %s",
            commander.email,
            commander.service_number,
            actor,
        )
        return commander

    def build_setup_link(self, commander: UnitCommander, token: PasswordSetupToken) -> str:
        query = urlencode({"email": commander.email, "token": token.token})
        return f"{self.config.site_url}/commander-password-setup?{query}"

    def send_setup_email(self, commander: UnitCommander, token: PasswordSetupToken) -> None:
        """Email the password-setup link.  Delivery errors are logged."""
        link = self.build_setup_link(commander, token)
        ttl_minutes = int(self.config.password_setup_ttl.total_seconds() // 60)
        body = (
            f"Dear {commander.rank} {commander.full_name},\n\n"
            f"You have been registered as a unit commander.\n\n"
            f"Service number: {commander.service_number}\n"
            f"Unit: {commander.unit or '-'}\n"
            f"State: {commander.state}\n\n"
            f"Set your password using the link below. The link expires in "
            f"{ttl_minutes} minutes and can be used once.\n\n"
            f"{link}\n"
        )
        try:
            send_mail(
                subject="Defense Headquarters - Password Setup",
                message=body,
                from_email=None,
                recipient_list=[commander.email],
            )
        except Exception:
            logger.exception(
                "Failed to send password-setup email to %s", commander.email,
            )


# ═══════════════════════════════════════════════════════════════════
#  Password Setup Service
# ═══════════════════════════════════════════════════════════════════


class PasswordSetupService:

    def __init__(self, config: PortalConfig | None = None) -> None:
        self.config = config or PortalConfig.from_settings()

    def issue_token(self, commander: UnitCommander) -> PasswordSetupToken:
        """Invalidate outstanding tokens and create a fresh one."""
        now = timezone.now()
        commander.setup_tokens.filter(used_at__isnull=True).update(used_at=now)
        return PasswordSetupToken.objects.create(
            commander=commander,
            token=secrets.token_urlsafe(32),
            expires_at=now + self.config.password_setup_ttl,
        )

    @transaction.atomic
    def complete(self, *, email: str, token: str, password: str) -> UnitCommander:
        """
        Redeem a setup token and set the commander's password.

        Raises
        ------
        DomainError
            Token unknown, already used, expired, or issued for a
            different email.  One message covers all cases.
        ValidationFailed
            Password rejected by Django's password validators.
        """
        invalid = DomainError("This password setup link is invalid or has expired.")
        try:
            setup = (
                PasswordSetupToken.objects
                .select_for_update()
                .select_related("commander__user")
                .get(token=token)
            )
        except PasswordSetupToken.DoesNotExist:
            raise invalid

        commander = setup.commander
        if commander.email.lower() != email.strip().lower() or not setup.is_usable:
            raise invalid

        user = commander.user
        try:
            validate_password(password, user=user)
        except DjangoValidationError as exc:
            raise ValidationFailed(
                "Password does not meet the requirements.",
                errors={"password": list(exc.messages)},
            )

        user.set_password(password)
        user.save(update_fields=["password"])
        setup.used_at = timezone.now()
        setup.save(update_fields=["used_at"])

        AuditTrailRecorder.record(
            entity_type=EntityType.COMMANDER,
            entity_id=commander.pk,
            action_type=ActionType.PASSWORD_SET,
            actor=user,
            is_sensitive=True,
        )
        logger.info("Commander %s completed password setup", commander.email)
        return commander


# ═══════════════════════════════════════════════════════════════════
#  Commander Service
# ═══════════════════════════════════════════════════════════════════


class CommanderService:

    #: Legal status changes.  Inactive is terminal only in the sense of
    #: requiring explicit reactivation.
    _ALLOWED_STATUS_CHANGES: dict[str, set[str]] = {
        CommanderStatus.ACTIVE: {CommanderStatus.SUSPENDED, CommanderStatus.INACTIVE},
        CommanderStatus.SUSPENDED: {CommanderStatus.ACTIVE, CommanderStatus.INACTIVE},
        CommanderStatus.INACTIVE: {CommanderStatus.ACTIVE},
    }

    @staticmethod
    def list_commanders(requesting_user: Any, filters: dict[str, Any] | None = None) -> QuerySet:
        require_permission(requesting_user, _VIEW_PERM, _MANAGE_PERM)
        qs = UnitCommander.objects.select_related("user")
        filters = filters or {}
        if filters.get("status"):
            qs = qs.filter(status=filters["status"])
        if filters.get("state"):
            qs = qs.filter(state__iexact=filters["state"])
        if filters.get("search"):
            term = filters["search"]
            qs = qs.filter(full_name__icontains=term) | qs.filter(
                service_number__icontains=term
            )
        return qs.order_by("full_name")

    @staticmethod
    def get_commander(commander_id: int, requesting_user: Any = None) -> UnitCommander:
        if requesting_user is not None:
            require_permission(requesting_user, _VIEW_PERM, _MANAGE_PERM)
        try:
            return UnitCommander.objects.select_related("user").get(pk=commander_id)
        except (UnitCommander.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Commander with id {commander_id} not found.")

    @staticmethod
    @transaction.atomic
    def set_status(commander_id: int, new_status: str, actor: Any) -> UnitCommander:
        """
        Activate, suspend or deactivate a commander.  Suspended and
        inactive commanders cannot log in.
        """
        require_permission(actor, _MANAGE_PERM)
        commander = lock_for_update(UnitCommander, commander_id)

        old_status = commander.status
        if new_status not in CommanderService._ALLOWED_STATUS_CHANGES.get(old_status, set()):
            raise InvalidTransition(current=old_status, target=new_status)

        commander.status = new_status
        commander.save(update_fields=["status", "updated_at"])

        user = commander.user
        user.is_active = new_status == CommanderStatus.ACTIVE
        user.save(update_fields=["is_active"])

        AuditTrailRecorder.record(
            entity_type=EntityType.COMMANDER,
            entity_id=commander.pk,
            action_type=ActionType.STATUS_CHANGE,
            actor=actor,
            old_values={"status": old_status},
            new_values={"status": new_status},
            severity="medium",
        )
        NotificationService.create(
            actor=actor,
            recipients=user,
            event_type="commander_status",
            payload={"status": new_status},
            related_object=commander,
        )
        return commander

    @staticmethod
    def resend_setup_link(
        commander_id: int,
        actor: Any,
        config: PortalConfig | None = None,
    ) -> PasswordSetupToken:
        require_permission(actor, _MANAGE_PERM)
        commander = CommanderService.get_commander(commander_id)
        registration = CommanderRegistrationService(config)
        with transaction.atomic():
            token = PasswordSetupService(registration.config).issue_token(commander)
            transaction.on_commit(
                lambda: registration.send_setup_email(commander, token)
            )
        return token
