from django.contrib import admin

from .models import Assignment


@admin.register(Assignment)
class AssignmentAdmin(admin.ModelAdmin):
    list_display = ("id", "report", "commander", "unit", "status",
                    "assigned_at", "resolved_at")
    list_filter = ("status",)
    search_fields = ("report__serial_number", "commander__full_name", "unit")
    readonly_fields = ("assigned_at", "resolved_at", "resolved_by",
                       "created_at", "updated_at")
