"""
core.domain.exception_handler — DRF-compatible global exception handler.

Maps domain exceptions from ``core.domain.exceptions`` to proper
DRF ``Response`` objects so that views don't need per-endpoint
try/except boilerplate.

Register in ``settings.py``::

    REST_FRAMEWORK = {
        ...
        'EXCEPTION_HANDLER': 'core.domain.exception_handler.domain_exception_handler',
    }

Response shape
--------------
Every error body carries a human-readable ``detail``.  Field-level
failures (DRF ``ValidationError`` or domain ``ValidationFailed``) also
carry ``errors``: a ``{field: [messages]}`` map.
"""

from __future__ import annotations

import logging

from rest_framework import exceptions as drf_exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_default_handler

from core.domain.exceptions import (
    AlreadyAssigned,
    Conflict,
    DomainError,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    SerialNumberExhausted,
    ValidationFailed,
)

logger = logging.getLogger(__name__)

# Domain exception → HTTP status code
_STATUS_MAP: dict[type, int] = {
    ValidationFailed:      400,
    PermissionDenied:      403,
    NotFound:              404,
    AlreadyAssigned:       409,
    SerialNumberExhausted: 409,
    InvalidTransition:     409,
    Conflict:              409,
    DomainError:           400,  # catch-all base class last
}


def _field_errors(detail) -> dict:
    if isinstance(detail, dict):
        return detail
    return {"non_field_errors": detail}


def domain_exception_handler(exc: Exception, context: dict) -> Response | None:
    """
    DRF exception handler that also handles ``core.domain.exceptions``.

    The default DRF handler is called first.  DRF validation errors are
    reshaped to ``{"detail", "errors"}``; anything DRF doesn't recognise
    is checked against the domain hierarchy.
    """
    response = drf_default_handler(exc, context)
    if response is not None:
        if isinstance(exc, drf_exceptions.ValidationError):
            response.data = {
                "detail": "Submission failed validation.",
                "errors": _field_errors(response.data),
            }
        return response

    # Check domain exceptions (order matters — most specific first)
    for exc_class, status_code in _STATUS_MAP.items():
        if isinstance(exc, exc_class):
            logger.warning(
                "Domain exception [%s] in %s: %s",
                exc_class.__name__,
                context.get("view", "unknown"),
                exc,
            )
            body = {"detail": str(exc)}
            if isinstance(exc, ValidationFailed):
                body["errors"] = exc.errors
            return Response(body, status=status_code)

    # Not our exception — let it propagate
    return None
