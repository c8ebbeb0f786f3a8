from django.contrib import admin

from .models import AuditLog, ReportAuditTrail


class ReadOnlyAdmin(admin.ModelAdmin):

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(AuditLog)
class AuditLogAdmin(ReadOnlyAdmin):
    list_display = ("timestamp", "entity_type", "entity_id", "action_type",
                    "actor", "actor_type", "severity_level")
    list_filter = ("entity_type", "action_type", "severity_level", "is_sensitive")
    search_fields = ("entity_id",)


@admin.register(ReportAuditTrail)
class ReportAuditTrailAdmin(ReadOnlyAdmin):
    list_display = ("created_at", "report", "field_changed", "change_reason")
    search_fields = ("report__serial_number",)
