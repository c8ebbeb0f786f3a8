"""
Root conftest.py — fixtures shared by the pytest-style tests.

  - ``in_memory_storage`` (autouse): attachments never touch disk.
  - ``rbac``: seeds the Administrator / Unit Commander roles.
  - ``create_user``: user factory; pass ``role="Administrator"`` to
    attach a seeded role by name.
"""

from __future__ import annotations

from io import StringIO
from itertools import count

import pytest
from django.core.management import call_command


@pytest.fixture(autouse=True)
def in_memory_storage(settings):
    settings.STORAGES = {
        "default": {"BACKEND": "django.core.files.storage.InMemoryStorage"},
        "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
    }


@pytest.fixture()
def rbac(db) -> str:
    """Run ``setup_rbac`` and return its console output."""
    out = StringIO()
    call_command("setup_rbac", stdout=out)
    return out.getvalue()


@pytest.fixture()
def create_user(db):
    from accounts.models import Role, User

    serial = count(1)

    def _factory(*, username: str | None = None, password: str = "Field!Pass2026", role=None, **fields) -> User:
        n = next(serial)
        username = username or f"officer{n}"
        fields.setdefault("email", f"{username}@dhq.test")
        fields.setdefault("phone_number", f"0803{n:07d}")
        if isinstance(role, str):
            role = Role.objects.get(name=role)
        return User.objects.create_user(username=username, password=password, role=role, **fields)

    return _factory
