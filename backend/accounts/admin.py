from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import Role, User


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ("name", "hierarchy_level", "description")
    search_fields = ("name",)
    filter_horizontal = ("permissions",)
    ordering = ("-hierarchy_level",)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "email", "phone_number",
                    "first_name", "last_name", "is_active", "role")
    search_fields = ("username", "email", "phone_number")
    list_filter = ("is_active", "is_staff", "role")
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Portal", {"fields": ("phone_number", "role")}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Portal", {"fields": ("email", "phone_number", "role")}),
    )
