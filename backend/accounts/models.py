"""
Accounts app models.

Defines the dynamic Role system and a custom User model that extends
Django's ``AbstractUser``.  Staff (triage administrators) and unit
commanders are both ``User`` rows; what they may do is decided by the
permissions attached to their single ``Role``.
"""

from django.contrib.auth.models import AbstractUser, Permission
from django.db import models


class Role(models.Model):
    """
    Dynamic, admin-manageable role.

    Default roles are seeded by the ``setup_rbac`` management command:
    Administrator and Unit Commander.  ``hierarchy_level`` orders roles
    for display; access decisions use permissions only.

    Custom workflow permissions are declared as constants in
    ``core.permissions_constants`` and registered in each model's
    ``Meta.permissions``.  ``setup_rbac`` links them to roles — it never
    creates permissions itself.
    """

    name = models.CharField(
        max_length=100,
        unique=True,
        verbose_name="Role Name",
    )
    description = models.TextField(
        blank=True,
        default="",
        verbose_name="Description",
    )
    hierarchy_level = models.PositiveSmallIntegerField(
        default=0,
        verbose_name="Hierarchy Level",
        help_text="Higher value = more authority.",
    )
    permissions = models.ManyToManyField(
        Permission,
        blank=True,
        verbose_name="Permissions",
        help_text="Specific permissions for this role.",
    )

    class Meta:
        verbose_name = "Role"
        verbose_name_plural = "Roles"
        ordering = ["-hierarchy_level"]

    def __str__(self):
        return self.name


class User(AbstractUser):
    """
    Portal user.

    HQ staff and unit commanders share this model; commanders also have
    a ``commander_profile``.  See ``accounts.backends`` for the accepted
    login identifiers.  One role per user, granting all of its
    permissions.
    """

    email = models.EmailField(
        unique=True,
        verbose_name="Email Address",
    )
    phone_number = models.CharField(
        max_length=20,
        unique=True,
        null=True,
        blank=True,
        verbose_name="Phone Number",
    )

    role = models.ForeignKey(
        Role,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="users",
        verbose_name="Assigned Role",
    )

    REQUIRED_FIELDS = ["email"]

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"

    def __str__(self):
        role_name = self.role.name if self.role else "No Role"
        return f"{self.username} - {role_name}"

    # ── RBAC Permission Overrides ────────────────────────────────────

    def get_all_permissions(self, obj=None) -> set:
        """
        Return a set of permission strings ('app_label.codename') the user has.
        """
        if not self.is_active:
            return set()

        if self.is_superuser:
            if not hasattr(self, "_superuser_perm_cache"):
                perms = Permission.objects.select_related("content_type").all()
                self._superuser_perm_cache = {
                    f"{p.content_type.app_label}.{p.codename}" for p in perms
                }
            return self._superuser_perm_cache

        if not self.role:
            return set()

        if not hasattr(self, "_perm_cache"):
            perms = self.role.permissions.select_related("content_type")
            self._perm_cache = {f"{p.content_type.app_label}.{p.codename}" for p in perms}

        return self._perm_cache

    def has_perm(self, perm: str, obj=None) -> bool:
        """
        Superusers always have all permissions; everyone else gets what
        their role grants.
        """
        if self.is_active and self.is_superuser:
            return True

        return perm in self.get_all_permissions(obj)

    def has_perms(self, perm_list, obj=None) -> bool:
        return all(self.has_perm(perm, obj) for perm in perm_list)

    def has_module_perms(self, app_label: str) -> bool:
        if self.is_active and self.is_superuser:
            return True

        return any(perm.startswith(f"{app_label}.") for perm in self.get_all_permissions())

    @property
    def permissions_list(self) -> list[str]:
        """Flat, sorted list of permission strings for API responses."""
        return sorted(self.get_all_permissions())
