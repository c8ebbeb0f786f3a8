"""
Core constants — **Single Source of Truth** for project-wide magic numbers.

Any business rule that references a numeric constant or ordering should
import it from here instead of hardcoding.  This avoids drift between
the intake validator, the triage queue and the metrics service.
"""

# ── Report intake ───────────────────────────────────────────────────
# Minimum length of a report description.
MIN_DESCRIPTION_LENGTH: int = 10

# ── Triage ordering ─────────────────────────────────────────────────
# Lower rank sorts first: critical > high > medium > low.
PRIORITY_RANK: dict[str, int] = {
    "critical": 0,
    "high": 1,
    "medium": 2,
    "low": 3,
}

# ── Serial numbers ──────────────────────────────────────────────────
# ``DHQ-2026-004217`` → six zero-padded random digits after the year.
SERIAL_DIGITS: int = 6
