from __future__ import annotations

from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import Role
from accounts.services import ADMINISTRATOR_ROLE, UNIT_COMMANDER_ROLE
from assignments.services import AssignmentService
from commanders.models import UnitCommander
from core.config import PortalConfig
from core.models import Notification
from reports.services import ReportIntakeService

User = get_user_model()


class TestNotificationsFlow(TestCase):

    @classmethod
    def setUpTestData(cls) -> None:
        call_command("setup_rbac", stdout=StringIO())

        cls.passwords = {
            "admin": "N0tify!Admin2026",
            "commander": "N0tify!Cmdr2026",
        }
        cls.admin = User.objects.create_user(
            username="notif_admin",
            password=cls.passwords["admin"],
            email="notif_admin@dhq.test",
            role=Role.objects.get(name=ADMINISTRATOR_ROLE),
        )
        cls.commander_user = User.objects.create_user(
            username="notif_commander",
            password=cls.passwords["commander"],
            email="notif_commander@units.test",
            role=Role.objects.get(name=UNIT_COMMANDER_ROLE),
        )
        cls.commander = UnitCommander.objects.create(
            user=cls.commander_user,
            full_name="Notif Commander",
            email=cls.commander_user.email,
            service_number="NA/5501",
            unit="Quick Reaction Force",
            state="Rivers",
        )

        cls.report = ReportIntakeService(PortalConfig()).submit({
            "description": "Pipeline vandals spotted near the creek.",
            "threat_type": "Vandalism",
            "state": "Rivers",
            "urgency": "medium",
        })
        cls.assignment = AssignmentService.assign(cls.report.pk, cls.commander.pk, cls.admin)

    def setUp(self) -> None:
        self.client = APIClient()

    def login(self, username: str, password: str) -> str:
        response = self.client.post(
            reverse("accounts:login"),
            {"identifier": username, "password": password},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        return response.data["access"]

    def auth(self, token: str) -> None:
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

    def test_admin_is_notified_of_new_report(self):
        self.auth(self.login("notif_admin", self.passwords["admin"]))

        response = self.client.get(reverse("core:notification-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]["title"], "New Report Submitted")
        self.assertEqual(response.data[0]["object_id"], str(self.report.pk))
        self.assertIn(self.report.serial_number, response.data[0]["message"])

    def test_commander_is_notified_of_assignment(self):
        self.auth(self.login("notif_commander", self.passwords["commander"]))

        response = self.client.get(reverse("core:notification-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        titles = [n["title"] for n in response.data]
        self.assertEqual(titles, ["Report Assigned"])
        self.assertEqual(response.data[0]["object_id"], str(self.assignment.pk))

    def test_mark_as_read_and_unread_filter(self):
        self.auth(self.login("notif_commander", self.passwords["commander"]))
        notification = Notification.objects.get(recipient=self.commander_user)

        response = self.client.post(
            reverse("core:notification-mark-as-read", kwargs={"pk": notification.pk}),
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertTrue(response.data["is_read"])

        unread = self.client.get(reverse("core:notification-list"), {"unread": "true"})
        self.assertEqual(unread.status_code, status.HTTP_200_OK, msg=unread.data)
        self.assertEqual(unread.data, [])

    def test_cannot_mark_someone_elses_notification(self):
        self.auth(self.login("notif_commander", self.passwords["commander"]))
        admin_notification = Notification.objects.get(recipient=self.admin)

        response = self.client.post(
            reverse("core:notification-mark-as-read", kwargs={"pk": admin_notification.pk}),
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        admin_notification.refresh_from_db()
        self.assertFalse(admin_notification.is_read)

    def test_requires_authentication(self):
        response = self.client.get(reverse("core:notification-list"))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
