"""
Security scanning of report attachments.

Runs after a report is committed (registered as a listener on report
INSERT events in ``ReportsConfig.ready``).  Results are informational:
they are stored as ``FileScanResult`` rows and never hide a report.

Scanner contract::

    scanner.scan(file_url, report_id, file_type, file_size=None) -> ScanOutcome

``file_type`` is the MIME type recorded at upload.  The scanner class is
chosen by ``PORTAL["FILE_SCANNER"]`` (dotted path).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from django.utils import timezone
from django.utils.module_loading import import_string

from core.config import PortalConfig
from core.domain.events import EntityChanged

from .models import FileScanResult, Report, ScanStatus

logger = logging.getLogger(__name__)

MAX_SCAN_SIZE = 50 * 1024 * 1024


@dataclass(frozen=True)
class ScanOutcome:
    status: str
    threats: list[str] = field(default_factory=list)


class FileScanner(Protocol):
    def scan(
        self,
        file_url: str,
        report_id: Any,
        file_type: str,
        file_size: int | None = None,
    ) -> ScanOutcome: ...


class MimeTypeFileScanner:
    """
    Offline scanner: accepts a fixed list of media/document MIME types,
    rejects executables and oversize files, flags everything else as
    suspicious.
    """

    name = "mime-allowlist"

    ALLOWED_TYPES = frozenset({
        "image/jpeg", "image/png", "image/gif", "image/webp",
        "video/mp4", "video/webm", "video/quicktime",
        "application/pdf", "text/plain",
    })
    EXECUTABLE_TYPES = frozenset({
        "application/x-msdownload",
        "application/x-msdos-program",
        "application/x-executable",
        "application/x-sh",
        "application/x-bat",
        "application/java-archive",
        "application/vnd.microsoft.portable-executable",
    })

    def scan(self, file_url, report_id, file_type, file_size=None) -> ScanOutcome:
        mime = (file_type or "").lower()
        if file_size is not None and file_size > MAX_SCAN_SIZE:
            return ScanOutcome(ScanStatus.REJECTED, ["File too large for scanning"])
        if mime in self.EXECUTABLE_TYPES:
            return ScanOutcome(ScanStatus.REJECTED, [f"Executable content ({mime})"])
        if mime not in self.ALLOWED_TYPES:
            return ScanOutcome(ScanStatus.SUSPICIOUS, ["Unsupported file type"])
        return ScanOutcome(ScanStatus.CLEAN, [])


def load_scanner(config: PortalConfig | None = None) -> FileScanner:
    config = config or PortalConfig.from_settings()
    return import_string(config.file_scanner)()


class FileScanService:

    def __init__(self, scanner: FileScanner | None = None, config: PortalConfig | None = None) -> None:
        self.scanner = scanner or load_scanner(config)

    def _attachments(self, report: Report) -> list[dict[str, Any]]:
        recorded = {a["url"]: a for a in report.metadata.get("attachments", [])}
        return [
            recorded.get(url, {"url": url, "category": category, "content_type": "", "size": None})
            for category, url in report.attachment_urls
        ]

    def scan_report(self, report_id: Any) -> list[FileScanResult]:
        """
        Scan every attachment of a report and store one result per file.
        A scanner exception is recorded as ``error`` for that file only.
        """
        try:
            report = Report.objects.get(pk=report_id)
        except Report.DoesNotExist:
            logger.warning("Scan requested for missing report %s", report_id)
            return []

        scanner_name = getattr(self.scanner, "name", type(self.scanner).__name__)
        results: list[FileScanResult] = []
        for attachment in self._attachments(report):
            try:
                outcome = self.scanner.scan(
                    attachment["url"],
                    report.pk,
                    attachment.get("content_type", ""),
                    attachment.get("size"),
                )
            except Exception as exc:
                logger.exception("Scanner failed on %s", attachment["url"])
                outcome = ScanOutcome(ScanStatus.ERROR, [f"Scan failed: {exc}"])

            results.append(FileScanResult.objects.create(
                report=report,
                file_url=attachment["url"],
                file_type=attachment.get("content_type", ""),
                category=attachment["category"],
                file_size=attachment.get("size"),
                status=outcome.status,
                threats=list(outcome.threats),
                scanner=scanner_name,
                scanned_at=timezone.now(),
            ))
            if outcome.status != ScanStatus.CLEAN:
                logger.warning(
                    "Attachment %s on report %s scanned %s: %s",
                    attachment["url"],
                    report.serial_number,
                    outcome.status,
                    "; ".join(outcome.threats),
                )
        return results

    @classmethod
    def handle_report_created(cls, event: EntityChanged) -> None:
        cls().scan_report(event.entity_id)
