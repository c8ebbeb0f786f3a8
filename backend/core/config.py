"""
Portal configuration.

``PortalConfig`` is an immutable snapshot of the ``PORTAL`` settings
dict.  Services take one as an explicit constructor argument (falling
back to ``PortalConfig.from_settings()``), so tests can hand in a
tweaked copy with ``dataclasses.replace`` instead of patching globals.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import timedelta
from typing import Any

from django.conf import settings


@dataclass(frozen=True)
class PortalConfig:
    serial_prefix: str = "DHQ"
    serial_max_attempts: int = 5
    password_setup_ttl: timedelta = timedelta(hours=1)
    site_url: str = "http://localhost:3000"
    upload_prefix: str = "report-files"
    file_scanner: str = "reports.scanning.MimeTypeFileScanner"

    @classmethod
    def from_settings(cls) -> PortalConfig:
        """Load from ``settings.PORTAL``; missing keys keep their defaults."""
        raw: dict[str, Any] = getattr(settings, "PORTAL", {}) or {}
        defaults = cls()
        return cls(
            serial_prefix=raw.get("SERIAL_PREFIX", defaults.serial_prefix),
            serial_max_attempts=int(
                raw.get("SERIAL_MAX_ATTEMPTS", defaults.serial_max_attempts)
            ),
            password_setup_ttl=timedelta(
                minutes=int(
                    raw.get(
                        "PASSWORD_SETUP_TTL_MINUTES",
                        defaults.password_setup_ttl.total_seconds() // 60,
                    )
                )
            ),
            site_url=str(raw.get("SITE_URL", defaults.site_url)).rstrip("/"),
            upload_prefix=raw.get("UPLOAD_PREFIX", defaults.upload_prefix),
            file_scanner=raw.get("FILE_SCANNER", defaults.file_scanner),
        )

    def to_settings(self) -> dict[str, Any]:
        """Inverse of ``from_settings``; used with ``override_settings``."""
        return {
            "SERIAL_PREFIX": self.serial_prefix,
            "SERIAL_MAX_ATTEMPTS": self.serial_max_attempts,
            "PASSWORD_SETUP_TTL_MINUTES": int(self.password_setup_ttl.total_seconds() // 60),
            "SITE_URL": self.site_url,
            "UPLOAD_PREFIX": self.upload_prefix,
            "FILE_SCANNER": self.file_scanner,
        }

    def with_overrides(self, **changes: Any) -> PortalConfig:
        return replace(self, **changes)
