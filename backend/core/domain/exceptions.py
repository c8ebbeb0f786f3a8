"""
core.domain.exceptions — Domain-specific exception hierarchy.

These exceptions represent business-rule violations inside service layers.
They are deliberately **not** DRF exceptions so that the domain layer stays
framework-agnostic and callable from management commands, change-event
listeners and tests alike.  ``core.domain.exception_handler`` maps them to
HTTP responses.

Mapping cheatsheet
------------------
┌────────────────────────┬──────┐
│ Domain Exception       │ Code │
├────────────────────────┼──────┤
│ DomainError            │ 400  │
│ ValidationFailed       │ 400  │
│ PermissionDenied       │ 403  │
│ NotFound               │ 404  │
│ Conflict               │ 409  │
│ InvalidTransition      │ 409  │
│ AlreadyAssigned        │ 409  │
│ SerialNumberExhausted  │ 409  │
└────────────────────────┴──────┘

Recommended usage inside a service::

    from core.domain.exceptions import InvalidTransition

    raise InvalidTransition(
        current=assignment.status,
        target="resolved",
        reason="A resolution can only be filed after responding.",
    )
"""

from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """
    Base class for all domain / business-rule errors.

    Catch this at the view boundary and convert to a 400 Bad Request.
    """

    def __init__(self, message: str = "A business rule was violated.") -> None:
        self.message = message
        super().__init__(self.message)


class ValidationFailed(DomainError):
    """
    Input was rejected before anything was persisted.

    ``errors`` maps field names to lists of human-readable messages so
    clients can render a field-level breakdown.
    """

    def __init__(
        self,
        message: str = "Submission failed validation.",
        *,
        errors: dict[str, list[str]] | None = None,
    ) -> None:
        super().__init__(message)
        self.errors: dict[str, list[str]] = errors or {}


class PermissionDenied(DomainError):
    """
    The authenticated user does not have the required role or permission
    for this operation.

    Maps to HTTP 403.
    """

    def __init__(self, message: str = "You do not have permission to perform this action.") -> None:
        super().__init__(message)


class NotFound(DomainError):
    """
    The requested resource does not exist (or is not visible to the
    requesting user given their role scope).

    Maps to HTTP 404.
    """

    def __init__(self, message: str = "The requested resource was not found.") -> None:
        super().__init__(message)


class Conflict(DomainError):
    """
    The operation conflicts with the current state of the resource.

    Typical usage: duplicate creation attempt, lost race on a unique
    constraint.  Maps to HTTP 409.
    """

    def __init__(self, message: str = "The operation conflicts with the current state.") -> None:
        super().__init__(message)


class InvalidTransition(Conflict):
    """
    A state-machine transition that is not allowed from the current status.

    Inherits from ``Conflict`` because an invalid transition IS a conflict
    with the resource's current state.  Maps to HTTP 409.

    Example::

        raise InvalidTransition(
            current="assigned",
            target="resolved",
            reason="Report must be responded to before it can be resolved.",
        )
    """

    def __init__(
        self,
        message: str | None = None,
        *,
        current: str | None = None,
        target: str | None = None,
        reason: str | None = None,
    ) -> None:
        if message is None:
            parts = ["Invalid state transition"]
            if current and target:
                parts.append(f"from '{current}' to '{target}'")
            if reason:
                parts.append(f"({reason})")
            message = " ".join(parts) + "."
        super().__init__(message)
        self.current = current
        self.target = target
        self.reason = reason


class AlreadyAssigned(Conflict):
    """The report already has an active (non-resolved) assignment."""

    def __init__(self, message: str | None = None, *, report_id: Any = None) -> None:
        if message is None:
            message = (
                f"Report {report_id} is already assigned."
                if report_id is not None
                else "Report is already assigned."
            )
        super().__init__(message)
        self.report_id = report_id


class SerialNumberExhausted(Conflict):
    """No unused serial number was found within the retry budget."""

    def __init__(self, attempts: int) -> None:
        super().__init__(
            f"Could not allocate a unique serial number after {attempts} attempts."
        )
        self.attempts = attempts
