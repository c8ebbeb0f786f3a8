"""
Tests for the ``setup_rbac`` management command and role-based
permission checks on ``User``.
"""

from __future__ import annotations

from io import StringIO

import pytest
from django.core.management import call_command

from accounts.management.commands.setup_rbac import ROLE_PERMISSIONS_MAP
from accounts.models import Role
from accounts.services import ADMINISTRATOR_ROLE, UNIT_COMMANDER_ROLE, RoleService


def _rerun() -> str:
    out = StringIO()
    call_command("setup_rbac", stdout=out)
    return out.getvalue()


@pytest.mark.django_db
class TestSetupRBAC:

    def test_creates_roles_with_all_permissions(self, rbac):
        assert "0 warning(s)" in rbac
        for (name, _desc, level), perms in ROLE_PERMISSIONS_MAP.items():
            role = Role.objects.get(name=name)
            assert role.hierarchy_level == level
            assert role.permissions.count() == len(perms)

    def test_is_idempotent(self, rbac):
        output = _rerun()

        assert Role.objects.count() == len(ROLE_PERMISSIONS_MAP)
        assert "0 role(s) created" in output

    def test_restores_edited_role(self, rbac):
        role = Role.objects.get(name=UNIT_COMMANDER_ROLE)
        role.hierarchy_level = 99
        role.save()
        role.permissions.clear()

        _rerun()

        role.refresh_from_db()
        assert role.hierarchy_level == 10
        assert role.permissions.exists()

    def test_commander_role_lookup_reuses_seeded_role(self, rbac):
        assert RoleService.commander_role() == Role.objects.get(name=UNIT_COMMANDER_ROLE)

    def test_commander_role_created_when_missing(self):
        role = RoleService.commander_role()
        assert role.name == UNIT_COMMANDER_ROLE
        assert not role.permissions.exists()


@pytest.mark.django_db
class TestRolePermissions:

    def test_user_gets_role_permissions(self, rbac, create_user):
        admin = create_user(role=ADMINISTRATOR_ROLE)
        commander = create_user(role=UNIT_COMMANDER_ROLE)

        assert admin.has_perm("assignments.can_assign_report")
        assert not commander.has_perm("assignments.can_assign_report")
        assert commander.has_perm("assignments.can_respond_to_assignment")
        assert "reports.can_scope_assigned_reports" in commander.permissions_list

    def test_user_without_role_has_no_permissions(self, create_user):
        user = create_user()
        assert user.get_all_permissions() == set()
        assert not user.has_module_perms("reports")

    def test_superuser_has_everything(self, create_user):
        root = create_user(is_superuser=True)
        assert root.has_perm("audit.can_view_audit_trail")
        assert root.has_module_perms("assignments")

    def test_inactive_user_has_no_permissions(self, rbac, create_user):
        user = create_user(role=ADMINISTRATOR_ROLE, is_active=False)
        assert user.get_all_permissions() == set()
