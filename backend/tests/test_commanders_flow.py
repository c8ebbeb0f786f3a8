"""
Integration tests — commander onboarding.

HQ registers a commander, the commander receives a one-time password
setup link by email, sets a password and logs in.  HQ can then suspend
or reactivate the account.
"""

from __future__ import annotations

from datetime import timedelta
from io import StringIO
from urllib.parse import parse_qs, urlparse

from django.contrib.auth import get_user_model
from django.core import mail
from django.core.management import call_command
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import Role
from accounts.services import ADMINISTRATOR_ROLE, UNIT_COMMANDER_ROLE
from audit.models import ActionType, AuditLog
from commanders.models import CommanderStatus, PasswordSetupToken, UnitCommander
from core.models import Notification

User = get_user_model()

_REGISTRATION = {
    "full_name": "Musa Danjuma",
    "email": "m.danjuma@units.test",
    "phone_number": "+2348031234567",
    "service_number": "NA/77120",
    "rank": "Lieutenant Colonel",
    "unit": "3rd Armoured Division",
    "state": "Plateau",
}

_NEW_PASSWORD = "Plateau!Watch2026"


class TestCommanderOnboarding(TestCase):

    @classmethod
    def setUpTestData(cls) -> None:
        call_command("setup_rbac", stdout=StringIO())
        cls.admin_password = "Hq!Onboard2026x"
        cls.admin = User.objects.create_user(
            username="onboard_admin",
            password=cls.admin_password,
            email="onboard_admin@dhq.test",
            role=Role.objects.get(name=ADMINISTRATOR_ROLE),
        )

    def setUp(self) -> None:
        self.client = APIClient()

    # ── Helpers ──────────────────────────────────────────────────────

    def login(self, identifier: str, password: str):
        return self.client.post(
            reverse("accounts:login"),
            {"identifier": identifier, "password": password},
            format="json",
        )

    def as_admin(self) -> None:
        response = self.login("onboard_admin", self.admin_password)
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")

    def register(self, **overrides):
        self.as_admin()
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(
                reverse("commander-list"),
                {**_REGISTRATION, **overrides},
                format="json",
            )
        return response

    def setup_password(self, token: str, password: str = _NEW_PASSWORD, email: str = _REGISTRATION["email"]):
        self.client.credentials()
        return self.client.post(
            reverse("commander-password-setup"),
            {"email": email, "token": token, "password": password, "password_confirm": password},
            format="json",
        )

    # ── Registration ─────────────────────────────────────────────────

    def test_register_creates_account_and_emails_link(self):
        response = self.register()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, msg=response.data)
        self.assertEqual(response.data["status"], CommanderStatus.ACTIVE)
        self.assertFalse(response.data["has_password"])

        commander = UnitCommander.objects.get(pk=response.data["id"])
        self.assertEqual(commander.user.role.name, UNIT_COMMANDER_ROLE)
        self.assertFalse(commander.user.has_usable_password())
        self.assertEqual(commander.created_by, self.admin)

        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.to, [_REGISTRATION["email"]])
        token = PasswordSetupToken.objects.get(commander=commander)
        link = next(line for line in message.body.splitlines() if "commander-password-setup" in line)
        query = parse_qs(urlparse(link).query)
        self.assertEqual(query["token"], [token.token])
        self.assertEqual(query["email"], [_REGISTRATION["email"]])

        ttl = token.expires_at - token.created_at
        self.assertLessEqual(abs(ttl - timedelta(hours=1)), timedelta(seconds=5))
        self.assertGreaterEqual(len(token.token), 32)

        self.assertTrue(
            AuditLog.objects.filter(entity_id=str(commander.pk), action_type=ActionType.CREATE).exists()
        )

    def test_duplicate_email_is_conflict(self):
        self.assertEqual(self.register().status_code, status.HTTP_201_CREATED)

        response = self.register(service_number="NA/99999")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(UnitCommander.objects.count(), 1)

    def test_invalid_phone_number_is_rejected(self):
        response = self.register(phone_number="call-me")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("phone_number", response.data["errors"])

    def test_commander_cannot_register_commanders(self):
        self.register()
        token = PasswordSetupToken.objects.get().token
        self.setup_password(token)

        login = self.login(_REGISTRATION["email"], _NEW_PASSWORD)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {login.data['access']}")
        response = self.client.post(
            reverse("commander-list"),
            {**_REGISTRATION, "email": "other@units.test", "service_number": "NA/1"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    # ── Password setup ───────────────────────────────────────────────

    def test_password_setup_then_login(self):
        self.register()
        token = PasswordSetupToken.objects.get().token

        response = self.setup_password(token)
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)

        login = self.login(_REGISTRATION["email"], _NEW_PASSWORD)
        self.assertEqual(login.status_code, status.HTTP_200_OK, msg=login.data)
        self.assertEqual(login.data["user"]["role_detail"]["name"], UNIT_COMMANDER_ROLE)

        entry = AuditLog.objects.get(action_type=ActionType.PASSWORD_SET)
        self.assertTrue(entry.is_sensitive)

    def test_login_with_service_number(self):
        self.register()
        self.setup_password(PasswordSetupToken.objects.get().token)

        login = self.login(_REGISTRATION["service_number"].lower(), _NEW_PASSWORD)

        self.assertEqual(login.status_code, status.HTTP_200_OK, msg=login.data)
        self.assertEqual(login.data["user"]["email"], _REGISTRATION["email"])

    def test_token_is_single_use(self):
        self.register()
        token = PasswordSetupToken.objects.get().token
        self.assertEqual(self.setup_password(token).status_code, status.HTTP_200_OK)

        response = self.setup_password(token, password="Another!Pass2026")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.login(_REGISTRATION["email"], "Another!Pass2026").status_code, 400)

    def test_expired_token_is_rejected(self):
        self.register()
        setup = PasswordSetupToken.objects.get()
        PasswordSetupToken.objects.filter(pk=setup.pk).update(
            expires_at=timezone.now() - timedelta(minutes=1),
        )

        response = self.setup_password(setup.token)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("expired", response.data["detail"])

    def test_token_for_another_email_is_rejected(self):
        self.register()
        token = PasswordSetupToken.objects.get().token

        response = self.setup_password(token, email="intruder@units.test")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_weak_password_is_rejected(self):
        self.register()
        token = PasswordSetupToken.objects.get().token

        response = self.setup_password(token, password="12345678")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("password", response.data["errors"])
        self.assertIsNone(PasswordSetupToken.objects.get().used_at)

    def test_mismatched_confirmation_is_rejected(self):
        self.register()
        token = PasswordSetupToken.objects.get().token
        self.client.credentials()

        response = self.client.post(
            reverse("commander-password-setup"),
            {
                "email": _REGISTRATION["email"],
                "token": token,
                "password": _NEW_PASSWORD,
                "password_confirm": "Different!Pass2026",
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("password_confirm", response.data["errors"])

    def test_resend_link_invalidates_previous_token(self):
        commander_id = self.register().data["id"]
        first = PasswordSetupToken.objects.get().token

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(
                reverse("commander-resend-setup-link", kwargs={"pk": commander_id}),
                format="json",
            )

        self.assertEqual(response.status_code, status.HTTP_202_ACCEPTED, msg=response.data)
        self.assertEqual(len(mail.outbox), 2)
        self.assertEqual(self.setup_password(first).status_code, status.HTTP_400_BAD_REQUEST)
        latest = PasswordSetupToken.objects.filter(used_at__isnull=True).get().token
        self.assertEqual(self.setup_password(latest).status_code, status.HTTP_200_OK)

    # ── Status changes ───────────────────────────────────────────────

    def test_suspend_blocks_login_and_notifies(self):
        commander_id = self.register().data["id"]
        self.setup_password(PasswordSetupToken.objects.get().token)

        self.as_admin()
        response = self.client.post(
            reverse("commander-set-status", kwargs={"pk": commander_id}),
            {"status": CommanderStatus.SUSPENDED},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual(response.data["status"], CommanderStatus.SUSPENDED)
        self.assertEqual(
            self.login(_REGISTRATION["email"], _NEW_PASSWORD).status_code,
            status.HTTP_400_BAD_REQUEST,
        )
        commander = UnitCommander.objects.get(pk=commander_id)
        self.assertTrue(Notification.objects.filter(recipient=commander.user).exists())

    def test_illegal_status_change_is_conflict(self):
        commander_id = self.register().data["id"]
        url = reverse("commander-set-status", kwargs={"pk": commander_id})
        self.client.post(url, {"status": CommanderStatus.INACTIVE}, format="json")

        response = self.client.post(url, {"status": CommanderStatus.SUSPENDED}, format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_list_filters_by_state(self):
        self.register()
        self.register(
            full_name="Ngozi Eze",
            email="n.eze@units.test",
            phone_number="",
            service_number="NA/88001",
            state="Enugu",
        )

        response = self.client.get(reverse("commander-list"), {"state": "enugu"})

        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual([row["full_name"] for row in response.data], ["Ngozi Eze"])
