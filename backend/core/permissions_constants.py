"""
Permissions Constants — **Single Source of Truth**

Every permission referenced in code (services, ``setup_rbac``, tests)
MUST use one of the constants defined here.

Organisation
------------
- **Standard CRUD** permissions follow Django's auto-generated naming:
  ``<action>_<model_lowercase>``. They are listed here for reference so
  that the ``setup_rbac`` command can map them to roles without typos.

- **Custom workflow** permissions are constants that map to codenames
  registered via each model's ``Meta.permissions`` tuple. Adding a new
  custom permission requires:
    1. Add the constant below.
    2. Add the ``(codename, description)`` to the related model's
       ``Meta.permissions``.
    3. Run ``makemigrations`` + ``migrate`` to insert it into Django's
       ``auth_permission`` table.
    4. Add the constant to the appropriate role lists in ``setup_rbac``.

All constants store the **codename only** (no ``app_label.`` prefix).
"""


# ════════════════════════════════════════════════════════════════════
#  ACCOUNTS APP
# ════════════════════════════════════════════════════════════════════

class AccountsPerms:
    """Standard CRUD permissions for accounts models."""

    VIEW_ROLE = "view_role"
    ADD_ROLE = "add_role"
    CHANGE_ROLE = "change_role"
    DELETE_ROLE = "delete_role"

    VIEW_USER = "view_user"
    ADD_USER = "add_user"
    CHANGE_USER = "change_user"
    DELETE_USER = "delete_user"


# ════════════════════════════════════════════════════════════════════
#  CORE APP
# ════════════════════════════════════════════════════════════════════

class CorePerms:
    """Dashboard metrics."""

    CAN_VIEW_SYSTEM_METRICS = "can_view_system_metrics"


# ════════════════════════════════════════════════════════════════════
#  REPORTS APP — Standard CRUD + Custom Workflow
# ════════════════════════════════════════════════════════════════════

class ReportsPerms:
    """Standard + custom permissions for the reports app."""

    VIEW_REPORT = "view_report"
    CHANGE_REPORT = "change_report"

    VIEW_FILESCANRESULT = "view_filescanresult"

    # ── Custom workflow permissions ─────────────────────────────────
    CAN_VALIDATE_REPORT = "can_validate_report"
    """Mark an incoming report as validated or rejected."""

    # ── Scope permissions (data-visibility tiers) ───────────────────
    CAN_SCOPE_ALL_REPORTS = "can_scope_all_reports"
    """Unrestricted report visibility (triage staff)."""

    CAN_SCOPE_ASSIGNED_REPORTS = "can_scope_assigned_reports"
    """Only reports assigned to the user's commander profile."""


# ════════════════════════════════════════════════════════════════════
#  ASSIGNMENTS APP
# ════════════════════════════════════════════════════════════════════

class AssignmentsPerms:
    """Standard + custom permissions for the assignments app."""

    VIEW_ASSIGNMENT = "view_assignment"

    CAN_ASSIGN_REPORT = "can_assign_report"
    """Bind a pending report to a commander."""

    CAN_REVIEW_RESOLUTION = "can_review_resolution"
    """Resolve an assignment or return its resolution for revision."""

    CAN_RESPOND_TO_ASSIGNMENT = "can_respond_to_assignment"
    """Commander-side transitions (accept, respond, submit resolution)."""

    CAN_SCOPE_ALL_ASSIGNMENTS = "can_scope_all_assignments"
    """Unrestricted assignment visibility."""


# ════════════════════════════════════════════════════════════════════
#  COMMANDERS APP
# ════════════════════════════════════════════════════════════════════

class CommandersPerms:
    """Standard + custom permissions for the commanders app."""

    VIEW_UNITCOMMANDER = "view_unitcommander"

    CAN_MANAGE_COMMANDERS = "can_manage_commanders"
    """Register commanders, change their status, resend setup links."""


# ════════════════════════════════════════════════════════════════════
#  AUDIT APP
# ════════════════════════════════════════════════════════════════════

class AuditPerms:
    """Read access to the audit trail."""

    VIEW_AUDITLOG = "view_auditlog"

    CAN_VIEW_AUDIT_TRAIL = "can_view_audit_trail"
    """Browse audit logs and per-report trails."""
