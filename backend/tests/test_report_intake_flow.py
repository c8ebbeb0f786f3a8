"""
Integration tests — public report intake, tracking, and the HQ triage
queue.

Endpoints under test
--------------------
POST /api/reports/submit/                      (public)
GET  /api/reports/track/{serial_number}/       (public)
GET  /api/reports/                             (triage queue)
GET  /api/reports/{id}/
POST /api/reports/{id}/validate/
"""

from __future__ import annotations

from datetime import timedelta
from io import StringIO
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.db import IntegrityError, transaction
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import Role
from accounts.services import ADMINISTRATOR_ROLE
from audit.models import ActionType, AuditLog
from core.config import PortalConfig
from core.domain.exceptions import Conflict, ValidationFailed
from core.models import Notification
from reports.models import Report, ReportStatus, ValidationStatus
from reports.serials import SERIAL_PATTERN
from reports.services import ReportIntakeService
from reports.storage import StoredFile

User = get_user_model()


def _payload(**overrides):
    data = {
        "description": "Armed men sighted near the bus terminal in Ikeja.",
        "threat_type": "Armed Robbery",
        "state": "Lagos",
        "urgency": "high",
    }
    data.update(overrides)
    return data


class TestReportSubmission(TestCase):

    @classmethod
    def setUpTestData(cls) -> None:
        call_command("setup_rbac", stdout=StringIO())
        cls.admin_password = "Tr1age!Desk2026"
        cls.admin = User.objects.create_user(
            username="triage_admin",
            password=cls.admin_password,
            email="triage@dhq.test",
            phone_number="08030000001",
            role=Role.objects.get(name=ADMINISTRATOR_ROLE),
        )

    def setUp(self) -> None:
        self.client = APIClient()
        self.submit_url = reverse("report-submit")

    def login(self) -> str:
        response = self.client.post(
            reverse("accounts:login"),
            {"identifier": "triage_admin", "password": self.admin_password},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        return response.data["access"]

    def auth(self) -> None:
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {self.login()}")

    # ── Submission ───────────────────────────────────────────────────

    def test_anonymous_submission_is_accepted(self):
        response = self.client.post(self.submit_url, _payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, msg=response.data)
        self.assertTrue(response.data["success"])
        self.assertEqual(response.data["status"], ReportStatus.PENDING)
        self.assertRegex(response.data["serial_number"], SERIAL_PATTERN)
        self.assertIn(str(timezone.now().year), response.data["serial_number"])

        report = Report.objects.get(pk=response.data["report_id"])
        self.assertEqual(report.state, "Lagos")
        self.assertEqual(report.urgency, "high")
        self.assertEqual(report.priority, "medium")
        self.assertEqual(report.validation_status, ValidationStatus.PENDING)
        self.assertTrue(report.is_anonymous)
        self.assertIsNone(report.reporter_name)
        self.assertIsNone(report.reporter_contact)

    def test_suspicious_vehicle_in_lagos(self):
        response = self.client.post(
            self.submit_url,
            {
                "description": "Suspicious vehicle near market",
                "threat_type": "armed robbery",
                "state": "Lagos",
                "urgency": "high",
                "is_anonymous": True,
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, msg=response.data)
        self.assertTrue(response.data["success"])
        self.assertRegex(response.data["serial_number"], r"^DHQ-\d{4}-\d{6}$")
        self.assertEqual(response.data["status"], "pending")

    def test_one_failed_upload_still_succeeds(self):
        files = [
            SimpleUploadedFile("one.jpg", b"img", content_type="image/jpeg"),
            SimpleUploadedFile("two.jpg", b"img", content_type="image/jpeg"),
            SimpleUploadedFile("three.pdf", b"pdf", content_type="application/pdf"),
        ]
        stored = [
            StoredFile("/media/one.jpg", "one.jpg", "image/jpeg", 3, "image"),
            ConnectionError("network down"),
            StoredFile("/media/three.pdf", "three.pdf", "application/pdf", 3, "document"),
        ]
        data = _payload()
        data["files"] = files

        with mock.patch("reports.storage.ReportFileStorage.upload", side_effect=stored):
            response = self.client.post(self.submit_url, data, format="multipart")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, msg=response.data)
        self.assertTrue(response.data["success"])
        report = Report.objects.get(pk=response.data["report_id"])
        self.assertEqual(report.images, ["/media/one.jpg"])
        self.assertEqual(report.documents, ["/media/three.pdf"])

    def test_submission_writes_audit_entry_and_notifies_hq(self):
        response = self.client.post(self.submit_url, _payload(), format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, msg=response.data)
        report_id = str(response.data["report_id"])

        entry = AuditLog.objects.get(entity_id=report_id, action_type=ActionType.CREATE)
        self.assertEqual(entry.actor_type, "anonymous")
        self.assertIsNone(entry.actor)
        self.assertFalse(entry.is_sensitive)
        self.assertEqual(entry.new_values["serial_number"], response.data["serial_number"])

        note = Notification.objects.get(recipient=self.admin)
        self.assertIn(response.data["serial_number"], note.message)

    def test_anonymous_flag_strips_reporter_identity(self):
        response = self.client.post(
            self.submit_url,
            _payload(is_anonymous=True, reporter_name="Ada", reporter_contact="08031112222"),
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, msg=response.data)

        report = Report.objects.get(pk=response.data["report_id"])
        self.assertIsNone(report.reporter_name)
        self.assertIsNone(report.reporter_contact)

    def test_named_report_requires_reporter_details(self):
        response = self.client.post(
            self.submit_url,
            _payload(is_anonymous=False),
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("reporter_name", response.data["errors"])
        self.assertIn("reporter_contact", response.data["errors"])
        self.assertEqual(Report.objects.count(), 0)

    def test_named_report_keeps_reporter_details(self):
        response = self.client.post(
            self.submit_url,
            _payload(is_anonymous=False, reporter_name="Ada Obi", reporter_contact="08031112222"),
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, msg=response.data)

        report = Report.objects.get(pk=response.data["report_id"])
        self.assertFalse(report.is_anonymous)
        self.assertEqual(report.reporter_name, "Ada Obi")
        entry = AuditLog.objects.get(entity_id=str(report.pk), action_type=ActionType.CREATE)
        self.assertTrue(entry.is_sensitive)

    def test_invalid_fields_are_reported_together(self):
        response = self.client.post(
            self.submit_url,
            {"description": "too short", "urgency": "apocalyptic"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(
            set(response.data["errors"]),
            {"description", "threat_type", "state", "urgency"},
        )
        self.assertEqual(Report.objects.count(), 0)

    def test_critical_urgency_defaults_priority_to_high(self):
        response = self.client.post(self.submit_url, _payload(urgency="critical"), format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, msg=response.data)
        self.assertEqual(Report.objects.get().priority, "high")

    def test_multipart_submission_stores_attachments(self):
        photo = SimpleUploadedFile("scene.jpg", b"\xff\xd8\xff\xe0jpeg", content_type="image/jpeg")
        clip = SimpleUploadedFile("clip.mp4", b"\x00\x00\x00\x18ftyp", content_type="video/mp4")
        data = _payload()
        data["files"] = [photo, clip]

        response = self.client.post(self.submit_url, data, format="multipart")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, msg=response.data)
        report = Report.objects.get(pk=response.data["report_id"])
        self.assertTrue(report.is_anonymous)
        self.assertEqual(len(report.images), 1)
        self.assertEqual(len(report.videos), 1)
        self.assertEqual(report.documents, [])
        self.assertEqual(
            report.metadata["files_uploaded"],
            {"images": 1, "videos": 1, "documents": 0},
        )

    # ── Tracking ─────────────────────────────────────────────────────

    def test_track_by_serial(self):
        created = self.client.post(self.submit_url, _payload(), format="json")
        serial = created.data["serial_number"]

        response = self.client.get(reverse("report-track", kwargs={"serial_number": serial.lower()}))

        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual(response.data["serial_number"], serial)
        self.assertEqual(response.data["status"], ReportStatus.PENDING)
        self.assertNotIn("description", response.data)
        self.assertNotIn("reporter_name", response.data)

    def test_track_unknown_serial_is_404(self):
        response = self.client.get(
            reverse("report-track", kwargs={"serial_number": "DHQ-1999-000000"})
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    # ── Staff access ─────────────────────────────────────────────────

    def test_triage_queue_requires_authentication(self):
        response = self.client.get(reverse("report-list"))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_validate_report(self):
        created = self.client.post(self.submit_url, _payload(), format="json")
        self.auth()
        url = reverse("report-validate", kwargs={"pk": created.data["report_id"]})

        response = self.client.post(url, {"decision": "validated", "notes": "Confirmed by patrol."}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual(response.data["validation_status"], ValidationStatus.VALIDATED)
        self.assertEqual(response.data["status"], ReportStatus.PENDING)

        again = self.client.post(url, {"decision": "rejected"}, format="json")
        self.assertEqual(again.status_code, status.HTTP_409_CONFLICT)

    def test_report_detail_unknown_id_is_404(self):
        self.auth()
        response = self.client.get(reverse("report-detail", kwargs={"pk": "not-a-uuid"}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class TestTriageQueue(TestCase):

    @classmethod
    def setUpTestData(cls) -> None:
        call_command("setup_rbac", stdout=StringIO())
        cls.admin = User.objects.create_user(
            username="queue_admin",
            password="Qu3ue!Admin2026",
            email="queue@dhq.test",
            role=Role.objects.get(name=ADMINISTRATOR_ROLE),
        )

        service = ReportIntakeService(PortalConfig())
        now = timezone.now()
        cls.reports = {}
        for label, priority, minutes_ago in (
            ("low", "low", 50),
            ("critical_new", "critical", 5),
            ("medium", "medium", 40),
            ("critical_old", "critical", 30),
            ("high", "high", 20),
        ):
            report = service.submit(_payload(priority=priority, state="Lagos" if label != "medium" else "Kano"))
            Report.objects.filter(pk=report.pk).update(created_at=now - timedelta(minutes=minutes_ago))
            cls.reports[label] = report

    def setUp(self) -> None:
        self.client = APIClient()
        response = self.client.post(
            reverse("accounts:login"),
            {"identifier": "queue@dhq.test", "password": "Qu3ue!Admin2026"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")

    def test_most_urgent_first_then_oldest(self):
        response = self.client.get(reverse("report-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        expected = [
            self.reports[label].serial_number
            for label in ("critical_old", "critical_new", "high", "medium", "low")
        ]
        self.assertEqual([row["serial_number"] for row in response.data], expected)

    def test_filter_by_state_and_priority(self):
        response = self.client.get(reverse("report-list"), {"state": "lagos", "priority": "critical"})

        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual(
            {row["serial_number"] for row in response.data},
            {self.reports["critical_old"].serial_number, self.reports["critical_new"].serial_number},
        )

    def test_user_without_scope_sees_nothing(self):
        User.objects.create_user(
            username="no_scope",
            password="N0Scope!User2026",
            email="noscope@dhq.test",
        )
        client = APIClient()
        login = client.post(
            reverse("accounts:login"),
            {"identifier": "no_scope", "password": "N0Scope!User2026"},
            format="json",
        )
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {login.data['access']}")

        response = client.get(reverse("report-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual(response.data, [])


class TestIntakeService(TestCase):
    """Service-level behaviour that the HTTP layer cannot easily provoke."""

    def _upload(self, name: str, content_type: str) -> SimpleUploadedFile:
        return SimpleUploadedFile(name, b"data", content_type=content_type)

    def test_failed_upload_is_skipped_not_fatal(self):
        storage = mock.Mock()
        storage.upload.side_effect = [
            StoredFile("/media/a.jpg", "a.jpg", "image/jpeg", 4, "image"),
            OSError("bucket unavailable"),
            StoredFile("/media/c.pdf", "c.pdf", "application/pdf", 4, "document"),
        ]
        service = ReportIntakeService(PortalConfig(), storage=storage)

        with self.assertLogs("reports.services", level="ERROR") as logs:
            report = service.submit(
                _payload(),
                [
                    self._upload("a.jpg", "image/jpeg"),
                    self._upload("b.mp4", "video/mp4"),
                    self._upload("c.pdf", "application/pdf"),
                ],
            )

        self.assertEqual(report.images, ["/media/a.jpg"])
        self.assertEqual(report.videos, [])
        self.assertEqual(report.documents, ["/media/c.pdf"])
        self.assertEqual(report.metadata["files_failed"], ["b.mp4"])
        self.assertEqual(report.status, ReportStatus.PENDING)
        self.assertIn("b.mp4", "\n".join(logs.output))

    def test_validation_failure_writes_nothing(self):
        storage = mock.Mock()
        service = ReportIntakeService(PortalConfig(), storage=storage)

        with self.assertRaises(ValidationFailed) as ctx:
            service.submit(_payload(description="short"), [self._upload("a.jpg", "image/jpeg")])

        self.assertIn("description", ctx.exception.errors)
        storage.upload.assert_not_called()
        self.assertEqual(Report.objects.count(), 0)

    def test_database_refuses_anonymous_report_with_identity(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Report.objects.create(
                    serial_number="DHQ-2026-999999",
                    description="Direct insert bypassing the service.",
                    threat_type="Theft",
                    state="Oyo",
                    is_anonymous=True,
                    reporter_name="Should not be here",
                )

    def test_serial_number_is_immutable(self):
        report = ReportIntakeService(PortalConfig()).submit(_payload())
        report.serial_number = "DHQ-2026-000000"

        with self.assertRaises(Conflict):
            report.save()
