from django.contrib import admin

from .models import PasswordSetupToken, UnitCommander


@admin.register(UnitCommander)
class UnitCommanderAdmin(admin.ModelAdmin):
    list_display = ("full_name", "service_number", "rank", "unit",
                    "state", "status")
    list_filter = ("status", "state")
    search_fields = ("full_name", "email", "service_number")


@admin.register(PasswordSetupToken)
class PasswordSetupTokenAdmin(admin.ModelAdmin):
    list_display = ("commander", "created_at", "expires_at", "used_at")
    readonly_fields = ("commander", "token", "created_at", "expires_at", "used_at")
