"""
Management command: setup_rbac
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Seeds the database with the portal's base **Roles** and links each role
to its set of Django permissions.

Key design principle — **this command does NOT create Permission objects**.
Permissions must already exist in the database:
    • Standard CRUD permissions are auto-created by Django after
      ``migrate`` (one per model × {add, change, delete, view}).
    • Custom workflow permissions are declared in each model's
      ``Meta.permissions`` tuple and inserted by ``migrate``.

The command is **idempotent** — safe to run multiple times.  Existing
roles are updated; permissions are replaced (set) to match the
mapping below.

Usage::

    python manage.py migrate
    python manage.py setup_rbac
"""

from django.contrib.auth.models import Permission
from django.core.management.base import BaseCommand

from accounts.models import Role
from accounts.services import ADMINISTRATOR_ROLE, UNIT_COMMANDER_ROLE
from core.permissions_constants import (
    AccountsPerms,
    AssignmentsPerms,
    AuditPerms,
    CommandersPerms,
    CorePerms,
    ReportsPerms,
)

# ────────────────────────────────────────────────────────────────────
# Role → Permission mapping  (uses constants — zero hard-coded strings)
# ────────────────────────────────────────────────────────────────────
# Key:   (role_name, description, hierarchy_level)
# Value: list of (app_label, codename)

ROLE_PERMISSIONS_MAP: dict[tuple[str, str, int], list[tuple[str, str]]] = {

    # ── Administrator (HQ triage desk) ──────────────────────────────
    (
        ADMINISTRATOR_ROLE,
        "Headquarters staff — triages reports, assigns commanders, reviews resolutions.",
        100,
    ): [
        ("accounts", AccountsPerms.VIEW_USER),
        ("accounts", AccountsPerms.VIEW_ROLE),
        ("core", CorePerms.CAN_VIEW_SYSTEM_METRICS),
        ("reports", ReportsPerms.VIEW_REPORT),
        ("reports", ReportsPerms.CHANGE_REPORT),
        ("reports", ReportsPerms.VIEW_FILESCANRESULT),
        ("reports", ReportsPerms.CAN_VALIDATE_REPORT),
        ("reports", ReportsPerms.CAN_SCOPE_ALL_REPORTS),
        ("assignments", AssignmentsPerms.VIEW_ASSIGNMENT),
        ("assignments", AssignmentsPerms.CAN_ASSIGN_REPORT),
        ("assignments", AssignmentsPerms.CAN_REVIEW_RESOLUTION),
        ("assignments", AssignmentsPerms.CAN_SCOPE_ALL_ASSIGNMENTS),
        ("commanders", CommandersPerms.VIEW_UNITCOMMANDER),
        ("commanders", CommandersPerms.CAN_MANAGE_COMMANDERS),
        ("audit", AuditPerms.VIEW_AUDITLOG),
        ("audit", AuditPerms.CAN_VIEW_AUDIT_TRAIL),
    ],

    # ── Unit Commander ──────────────────────────────────────────────
    (
        UNIT_COMMANDER_ROLE,
        "Field unit commander who responds to assigned reports.",
        10,
    ): [
        ("reports", ReportsPerms.VIEW_REPORT),
        ("reports", ReportsPerms.CAN_SCOPE_ASSIGNED_REPORTS),
        ("assignments", AssignmentsPerms.VIEW_ASSIGNMENT),
        ("assignments", AssignmentsPerms.CAN_RESPOND_TO_ASSIGNMENT),
    ],
}


class Command(BaseCommand):
    help = (
        "Seeds the database with base Roles and maps each role to its "
        "Django permissions.  Safe to run multiple times (idempotent).  "
        "Does NOT create permissions — run `migrate` first."
    )

    def handle(self, *args, **options):
        self.stdout.write(self.style.MIGRATE_HEADING(
            "\n══════════════════════════════════════════"
            "\n  RBAC Setup — Seeding Roles & Permissions"
            "\n══════════════════════════════════════════\n"
        ))

        all_permissions: dict[tuple[str, str], Permission] = {
            (p.content_type.app_label, p.codename): p
            for p in Permission.objects.select_related("content_type").all()
        }

        roles_created = 0
        roles_updated = 0
        warnings = 0

        for (role_name, description, hierarchy_level), perm_keys in ROLE_PERMISSIONS_MAP.items():
            role, created = Role.objects.get_or_create(
                name=role_name,
                defaults={
                    "description": description,
                    "hierarchy_level": hierarchy_level,
                },
            )

            if not created and (
                role.description != description
                or role.hierarchy_level != hierarchy_level
            ):
                role.description = description
                role.hierarchy_level = hierarchy_level
                role.save(update_fields=["description", "hierarchy_level"])

            resolved_permissions: list[Permission] = []
            for app_label, codename in perm_keys:
                perm = all_permissions.get((app_label, codename))
                if perm is not None:
                    resolved_permissions.append(perm)
                else:
                    warnings += 1
                    self.stdout.write(self.style.WARNING(
                        f"  ⚠  Permission '{app_label}.{codename}' not found — "
                        f"skipped for role '{role_name}'.  "
                        f"(Run migrate first?)"
                    ))

            role.permissions.set(resolved_permissions)

            if created:
                roles_created += 1
            else:
                roles_updated += 1

            self.stdout.write(self.style.SUCCESS(
                f"  ✔  {'Created' if created else 'Updated'} role: {role_name:<20s} "
                f"(hierarchy={hierarchy_level}, "
                f"permissions={len(resolved_permissions)})"
            ))

        self.stdout.write(self.style.MIGRATE_HEADING(
            "\n──────────────────────────────────────────"
        ))
        self.stdout.write(self.style.SUCCESS(
            f"  Done!  {roles_created} role(s) created, "
            f"{roles_updated} role(s) updated, {warnings} warning(s)."
        ))
