"""
Report serial numbers.

Format: ``{prefix}-{4-digit year}-{6-digit zero-padded random}``, e.g.
``DHQ-2026-004217``.  Draws come from ``secrets`` so serials cannot be
enumerated.  ``allocate`` and ``claim`` redraw on collision up to the
configured attempt budget and then give up with
``SerialNumberExhausted``; there is no sequential fallback.
"""

from __future__ import annotations

import logging
import re
import secrets
from typing import Callable, Iterator, TypeVar

from django.db import IntegrityError, transaction
from django.utils import timezone

from core.config import PortalConfig
from core.constants import SERIAL_DIGITS
from core.domain.exceptions import SerialNumberExhausted

logger = logging.getLogger(__name__)

SERIAL_PATTERN = re.compile(r"^[A-Z]+-\d{4}-\d{6}$")

T = TypeVar("T")


def generate(prefix: str = "DHQ", year: int | None = None) -> str:
    """Draw one candidate serial.  Uniqueness is NOT checked here."""
    if year is None:
        year = timezone.now().year
    number = secrets.randbelow(10 ** SERIAL_DIGITS)
    return f"{prefix}-{year:04d}-{number:0{SERIAL_DIGITS}d}"


def _serial_exists(serial: str) -> bool:
    from reports.models import Report

    return Report.objects.filter(serial_number=serial).exists()


class SerialNumberGenerator:
    """
    Allocates serials that are unused at the time of the check.

    The check is advisory: the unique index on ``Report.serial_number``
    is what finally rejects a duplicate; ``claim`` redraws in that case
    from the same attempt budget.
    """

    def __init__(
        self,
        config: PortalConfig | None = None,
        *,
        draw: Callable[[str], str] | None = None,
    ) -> None:
        self.config = config or PortalConfig.from_settings()
        self._draw = draw or generate

    def generate(self) -> str:
        return self._draw(self.config.serial_prefix)

    def allocate(self, exists: Callable[[str], bool] | None = None) -> str:
        """
        Return a serial for which ``exists(serial)`` is false.

        Raises:
            SerialNumberExhausted: every draw within the attempt budget
                collided with a persisted report.
        """
        for _attempt, candidate in self._free_candidates(exists or _serial_exists):
            return candidate

    def claim(self, insert: Callable[[str], T], exists: Callable[[str], bool] | None = None) -> T:
        """
        Draw serials until ``insert(serial)`` succeeds and return its result.

        Each insert runs in a savepoint.  A unique-index violation on a
        serial that now exists (a concurrent submission took it after the
        check) costs one draw from the same budget as a check collision,
        so at most ``serial_max_attempts`` serials are drawn in total.

        Raises:
            SerialNumberExhausted: the budget ran out.
            IntegrityError: the insert failed for another reason.
        """
        exists = exists or _serial_exists
        for attempt, candidate in self._free_candidates(exists):
            try:
                with transaction.atomic():
                    return insert(candidate)
            except IntegrityError:
                if not exists(candidate):
                    raise
                logger.warning(
                    "Serial %s claimed concurrently (attempt %d/%d)",
                    candidate,
                    attempt,
                    self.config.serial_max_attempts,
                )

    def _free_candidates(self, exists: Callable[[str], bool]) -> Iterator[tuple[int, str]]:
        max_attempts = self.config.serial_max_attempts
        for attempt in range(1, max_attempts + 1):
            candidate = self.generate()
            if not exists(candidate):
                yield attempt, candidate
                continue
            logger.warning(
                "Serial number collision on %s (attempt %d/%d)",
                candidate,
                attempt,
                max_attempts,
            )
        logger.error("Serial number allocation exhausted after %d attempts", max_attempts)
        raise SerialNumberExhausted(max_attempts)
