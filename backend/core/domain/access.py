"""
core.domain.access — Who may see which reports and assignments.

Every queryset handed to an API view passes through
``apply_permission_scope`` with the owning app's ordered rule list:

    REPORT_SCOPE_RULES = [
        ("reports.can_scope_all_reports", lambda qs, u: qs),
        ("reports.can_scope_assigned_reports",
         lambda qs, u: qs.filter(assignments__commander__user=u).distinct()),
    ]

HQ staff match the first rule, commanders the second; anyone else gets
an empty queryset.  Mutating operations call ``require_permission``
before they take any lock.

Role names are never consulted here, only Django permissions granted
through the user's role.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Iterable

from django.db.models import QuerySet

from core.domain.exceptions import PermissionDenied

if TYPE_CHECKING:
    from accounts.models import User

ScopeFilter = Callable[[QuerySet, "User"], QuerySet]
ScopeRule = tuple[str, ScopeFilter]


def _is_authenticated(user) -> bool:
    return user is not None and getattr(user, "is_authenticated", False)


def apply_permission_scope(
    queryset: QuerySet,
    user: User | None,
    *,
    scope_rules: Iterable[ScopeRule],
    default: str = "none",
) -> QuerySet:
    """
    Narrow ``queryset`` with the first rule whose permission ``user`` holds.

    Rules are tried in order, so list the broadest scope first.  When
    nothing matches the result is empty, or the unfiltered queryset if
    ``default="all"``.  Anonymous callers always fall through to the
    default.
    """
    if _is_authenticated(user):
        for perm, narrow in scope_rules:
            if user.has_perm(perm):
                return narrow(queryset, user)

    return queryset if default == "all" else queryset.none()


def require_permission(user: User | None, *perms: str, message: str = "") -> None:
    """
    Raise ``PermissionDenied`` unless ``user`` holds at least one of ``perms``.

        require_permission(actor, "assignments.can_assign_report")
    """
    if _is_authenticated(user) and any(user.has_perm(p) for p in perms):
        return
    raise PermissionDenied(
        message or f"Missing required permission: {' or '.join(perms)}."
    )
