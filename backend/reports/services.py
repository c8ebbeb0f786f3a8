"""
Reports Service Layer.

Architecture
------------
- ``ReportIntakeService``     — validates and persists a citizen
                                submission with its attachments.
- ``ReportQueryService``      — permission-scoped triage queue, detail,
                                public tracking lookup.
- ``ReportValidationService`` — HQ marks a report validated/rejected.

Intake semantics
----------------
Validation is all-or-nothing and happens before anything is written.
Attachments are uploaded one by one; a failing upload is logged and
skipped, never aborting the submission.  The report row itself is
mandatory: if it cannot be inserted the whole submission fails.  After
commit, the report INSERT event triggers the security scan and the
metrics refresh; intake does not wait for either.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Case, IntegerField, QuerySet, Value, When
from django.utils import timezone

from audit.models import ActionType, EntityType
from audit.services import AuditTrailRecorder
from core.config import PortalConfig
from core.constants import MIN_DESCRIPTION_LENGTH, PRIORITY_RANK
from core.domain.access import apply_permission_scope, require_permission
from core.domain.events import EntityChangeBus, EventType
from core.domain.exceptions import NotFound, ValidationFailed
from core.domain.notifications import NotificationService
from core.domain.transactions import atomic_transition
from core.permissions_constants import ReportsPerms

from .models import FileCategory, Report, Urgency, ValidationStatus
from .serials import SerialNumberGenerator
from .storage import ReportFileStorage, StoredFile

logger = logging.getLogger(__name__)

REPORT_TABLE = "reports.Report"

_TRUE_STRINGS = {"1", "true", "yes", "on"}

_REPORTER_FIELDS = ("reporter_name", "reporter_contact", "reporter_phone", "reporter_email")

_OPTIONAL_TEXT_FIELDS = (
    "location",
    "local_government",
    "full_address",
    "landmark",
    "manual_location",
)

_CATEGORY_LIST_FIELD = {
    FileCategory.IMAGE: "images",
    FileCategory.VIDEO: "videos",
    FileCategory.DOCUMENT: "documents",
}


def _as_bool(value: Any, default: bool) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_STRINGS


def _blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def report_snapshot(report: Report) -> dict[str, Any]:
    """Fields recorded in audit entries for a report."""
    return {
        "serial_number": report.serial_number,
        "status": report.status,
        "urgency": report.urgency,
        "priority": report.priority,
        "validation_status": report.validation_status,
        "threat_type": report.threat_type,
        "state": report.state,
        "is_anonymous": report.is_anonymous,
    }


# ═══════════════════════════════════════════════════════════════════
#  Intake Service
# ═══════════════════════════════════════════════════════════════════


class ReportIntakeService:
    """
    Accepts a citizen submission.

    Collaborators (storage, serial generator, configuration) are
    injected so tests and alternative deployments can swap them.
    """

    def __init__(
        self,
        config: PortalConfig | None = None,
        *,
        storage: ReportFileStorage | None = None,
        serials: SerialNumberGenerator | None = None,
    ) -> None:
        self.config = config or PortalConfig.from_settings()
        self.storage = storage or ReportFileStorage(self.config)
        self.serials = serials or SerialNumberGenerator(self.config)

    # ── Validation ──────────────────────────────────────────────────

    @staticmethod
    def validate_payload(payload: dict[str, Any]) -> dict[str, Any]:
        """
        Check a raw submission and return the cleaned field values.

        Rules
        -----
        * ``description`` — at least ``MIN_DESCRIPTION_LENGTH`` characters.
        * ``threat_type``, ``state`` — non-empty.
        * ``urgency`` / ``priority`` — one of low, medium, high, critical.
        * ``is_anonymous`` — defaults to true.  When false, ``reporter_name``
          and ``reporter_contact`` are required.  When true, every reporter
          identity field is dropped.

        Raises
        ------
        ValidationFailed
            With ``errors`` mapping each offending field to its messages.
        """
        errors: dict[str, list[str]] = {}

        description = str(payload.get("description") or "").strip()
        if len(description) < MIN_DESCRIPTION_LENGTH:
            errors["description"] = [
                f"Description must be at least {MIN_DESCRIPTION_LENGTH} characters."
            ]

        for name in ("threat_type", "state"):
            if _blank(payload.get(name)):
                errors[name] = ["This field is required."]

        urgency = str(payload.get("urgency") or Urgency.MEDIUM).strip().lower()
        if urgency not in Urgency.values:
            errors["urgency"] = [f"Must be one of: {', '.join(Urgency.values)}."]

        priority = payload.get("priority")
        if not _blank(priority):
            priority = str(priority).strip().lower()
            if priority not in Urgency.values:
                errors["priority"] = [f"Must be one of: {', '.join(Urgency.values)}."]
        else:
            priority = Urgency.HIGH if urgency == Urgency.CRITICAL else Urgency.MEDIUM

        is_anonymous = _as_bool(payload.get("is_anonymous"), default=True)
        if not is_anonymous:
            for name in ("reporter_name", "reporter_contact"):
                if _blank(payload.get(name)):
                    errors[name] = ["Required unless the report is anonymous."]

        if errors:
            raise ValidationFailed(errors=errors)

        cleaned: dict[str, Any] = {
            "description": description,
            "threat_type": str(payload["threat_type"]).strip(),
            "state": str(payload["state"]).strip(),
            "urgency": urgency,
            "priority": priority,
            "is_anonymous": is_anonymous,
        }
        for name in _OPTIONAL_TEXT_FIELDS:
            cleaned[name] = str(payload.get(name) or "").strip()
        for name in ("latitude", "longitude", "location_accuracy"):
            cleaned[name] = payload.get(name)
        for name in _REPORTER_FIELDS:
            value = payload.get(name)
            cleaned[name] = None if is_anonymous or _blank(value) else str(value).strip()
        return cleaned

    # ── Attachments ─────────────────────────────────────────────────

    def _upload_all(self, files: Iterable[Any]) -> tuple[list[StoredFile], list[str]]:
        stored: list[StoredFile] = []
        failed: list[str] = []
        for upload in files:
            name = getattr(upload, "name", "<unnamed>")
            try:
                stored.append(self.storage.upload(upload))
            except Exception:
                logger.exception("Attachment upload failed for %s; skipping", name)
                failed.append(name)
        return stored, failed

    # ── Submission ──────────────────────────────────────────────────

    def submit(
        self,
        payload: dict[str, Any],
        files: Iterable[Any] = (),
        *,
        actor: Any = None,
        context: dict[str, Any] | None = None,
    ) -> Report:
        """
        Validate, upload attachments, allocate a serial, persist.

        Parameters
        ----------
        payload : dict
            Raw submission fields.
        files : iterable of UploadedFile
            Attachments; each is categorised by its MIME type.
        actor : User | None
            Logged-in submitter, if any.  Anonymous web submissions pass
            ``None``.
        context : dict | None
            Request context recorded in metadata (``user_agent``,
            ``ip_address``).

        Returns
        -------
        Report
            Saved with ``status=pending`` and ``validation_status=pending``.

        Raises
        ------
        ValidationFailed
            Nothing was written.
        SerialNumberExhausted
            No free serial within the retry budget; nothing was written.
        """
        data = self.validate_payload(payload)
        stored, failed = self._upload_all(files)
        context = context or {}

        for item in stored:
            data.setdefault(_CATEGORY_LIST_FIELD[item.category], []).append(item.url)
        counts = {
            list_field: len(data.get(list_field, []))
            for list_field in _CATEGORY_LIST_FIELD.values()
        }
        data["metadata"] = {
            "submission_timestamp": timezone.now().isoformat(),
            "user_agent": context.get("user_agent", ""),
            "ip_address": context.get("ip_address"),
            "files_uploaded": counts,
            "files_failed": failed,
            "attachments": [item.as_metadata() for item in stored],
        }

        with transaction.atomic():
            report = self._insert_with_serial(data)

            AuditTrailRecorder.record(
                entity_type=EntityType.REPORT,
                entity_id=report.pk,
                action_type=ActionType.CREATE,
                actor=actor,
                new_values=report_snapshot(report),
                report=report,
                is_sensitive=not report.is_anonymous,
            )
            NotificationService.notify_admins(
                actor=actor,
                event_type="report_submitted",
                payload={"serial_number": report.serial_number},
                related_object=report,
            )
            EntityChangeBus.emit(REPORT_TABLE, EventType.INSERT, report.pk)

        logger.info(
            "Report %s submitted (urgency=%s, files=%s, failed_uploads=%d)",
            report.serial_number,
            report.urgency,
            counts,
            len(failed),
        )
        return report

    def _insert_with_serial(self, data: dict[str, Any]) -> Report:
        """
        Insert the report, redrawing the serial if a concurrent
        submission claimed it between the check and the insert.
        """
        return self.serials.claim(lambda serial: Report.objects.create(serial_number=serial, **data))


# ═══════════════════════════════════════════════════════════════════
#  Query Service
# ═══════════════════════════════════════════════════════════════════

REPORT_SCOPE_RULES = [
    (f"reports.{ReportsPerms.CAN_SCOPE_ALL_REPORTS}", lambda qs, u: qs),
    (
        f"reports.{ReportsPerms.CAN_SCOPE_ASSIGNED_REPORTS}",
        lambda qs, u: qs.filter(assignments__commander__user=u).distinct(),
    ),
]

_PRIORITY_ORDER = Case(
    *[When(priority=level, then=Value(rank)) for level, rank in PRIORITY_RANK.items()],
    default=Value(len(PRIORITY_RANK)),
    output_field=IntegerField(),
)


class ReportQueryService:

    @staticmethod
    def get_triage_queue(user: Any, filters: dict[str, Any] | None = None) -> QuerySet:
        """
        Reports visible to ``user``, most urgent first
        (critical > high > medium > low), oldest first within a level.

        Supported filters: ``status``, ``urgency``, ``priority``,
        ``state``, ``validation_status``, ``serial_number``.
        """
        qs = apply_permission_scope(
            Report.objects.all(), user, scope_rules=REPORT_SCOPE_RULES,
        )
        filters = filters or {}
        for key in ("status", "urgency", "priority", "validation_status"):
            if filters.get(key):
                qs = qs.filter(**{key: filters[key]})
        if filters.get("state"):
            qs = qs.filter(state__iexact=filters["state"])
        if filters.get("serial_number"):
            qs = qs.filter(serial_number__icontains=filters["serial_number"])
        return qs.annotate(priority_rank=_PRIORITY_ORDER).order_by("priority_rank", "created_at")

    @staticmethod
    def get_report(user: Any, report_id: Any) -> Report:
        qs = apply_permission_scope(
            Report.objects.all(), user, scope_rules=REPORT_SCOPE_RULES,
        )
        try:
            return qs.get(pk=report_id)
        except (Report.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            raise NotFound(f"Report {report_id} not found.")

    @staticmethod
    def track(serial_number: str) -> Report:
        """Public lookup by serial number."""
        try:
            return Report.objects.get(serial_number=serial_number.strip().upper())
        except Report.DoesNotExist:
            raise NotFound(f"No report with serial number {serial_number}.")


# ═══════════════════════════════════════════════════════════════════
#  Validation Service
# ═══════════════════════════════════════════════════════════════════


class ReportValidationService:

    @staticmethod
    def set_validation(report_id: Any, decision: str, actor: Any, notes: str = "") -> Report:
        """
        Move ``validation_status`` from pending to validated/rejected.
        The workflow ``status`` is not touched.
        """
        require_permission(actor, f"reports.{ReportsPerms.CAN_VALIDATE_REPORT}")
        if decision not in (ValidationStatus.VALIDATED, ValidationStatus.REJECTED):
            raise ValidationFailed(errors={"decision": ["Must be 'validated' or 'rejected'."]})

        report = ReportQueryService.get_report(actor, report_id)
        with transaction.atomic():
            report = atomic_transition(
                instance=report,
                status_field="validation_status",
                target_status=decision,
                allowed_sources={ValidationStatus.PENDING},
            )
            AuditTrailRecorder.record(
                entity_type=EntityType.REPORT,
                entity_id=report.pk,
                action_type=ActionType.VALIDATE,
                actor=actor,
                old_values={"validation_status": ValidationStatus.PENDING},
                new_values={"validation_status": decision},
                report=report,
                change_reason=notes,
            )
        return report
