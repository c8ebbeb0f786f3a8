"""
Commanders app models.

A ``UnitCommander`` is the field-side profile attached to a portal
``User``.  Commanders are onboarded by headquarters staff and set their
own password through a one-time, time-limited ``PasswordSetupToken``.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.models import TimeStampedModel
from core.permissions_constants import CommandersPerms


class CommanderStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    SUSPENDED = "suspended", "Suspended"
    INACTIVE = "inactive", "Inactive"


class UnitCommander(TimeStampedModel):
    """
    Field unit commander eligible to receive report assignments.

    Only ``active`` commanders can be assigned new reports.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="commander_profile",
        verbose_name="User Account",
    )
    full_name = models.CharField(max_length=255, verbose_name="Full Name")
    email = models.EmailField(unique=True, verbose_name="Email")
    phone_number = models.CharField(max_length=20, blank=True, default="")
    service_number = models.CharField(
        max_length=50,
        unique=True,
        verbose_name="Service Number",
    )
    rank = models.CharField(max_length=100, blank=True, default="")
    unit = models.CharField(
        max_length=150,
        blank=True,
        default="",
        help_text="Name or identifier of the responding unit.",
    )
    category = models.CharField(max_length=100, blank=True, default="")
    state = models.CharField(
        max_length=100,
        db_index=True,
        help_text="State of operation.",
    )
    status = models.CharField(
        max_length=20,
        choices=CommanderStatus.choices,
        default=CommanderStatus.ACTIVE,
        db_index=True,
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="registered_commanders",
    )

    class Meta:
        verbose_name = "Unit Commander"
        verbose_name_plural = "Unit Commanders"
        ordering = ["full_name"]
        permissions = [
            (CommandersPerms.CAN_MANAGE_COMMANDERS, "Can register and manage unit commanders"),
        ]

    def __str__(self):
        return f"{self.rank} {self.full_name} ({self.unit or self.state})".strip()

    @property
    def is_active(self) -> bool:
        return self.status == CommanderStatus.ACTIVE


class PasswordSetupToken(models.Model):
    """
    One-time token embedded in the password-setup link emailed to a
    newly registered commander.
    """

    commander = models.ForeignKey(
        UnitCommander,
        on_delete=models.CASCADE,
        related_name="setup_tokens",
    )
    token = models.CharField(max_length=128, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)
    expires_at = models.DateTimeField()
    used_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"Setup token for {self.commander.email} (expires {self.expires_at:%Y-%m-%d %H:%M})"

    @property
    def is_expired(self) -> bool:
        return timezone.now() >= self.expires_at

    @property
    def is_usable(self) -> bool:
        return self.used_at is None and not self.is_expired
