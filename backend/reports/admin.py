from django.contrib import admin

from .models import FileScanResult, Report


class FileScanResultInline(admin.TabularInline):
    model = FileScanResult
    extra = 0
    readonly_fields = ("file_url", "file_type", "category", "status",
                       "threats", "scanner", "scanned_at")


@admin.register(Report)
class ReportAdmin(admin.ModelAdmin):
    list_display = ("serial_number", "threat_type", "state", "status",
                    "urgency", "priority", "validation_status", "created_at")
    list_filter = ("status", "urgency", "priority", "validation_status")
    search_fields = ("serial_number", "description", "state")
    readonly_fields = ("serial_number", "metadata", "created_at", "updated_at")
    inlines = [FileScanResultInline]


@admin.register(FileScanResult)
class FileScanResultAdmin(admin.ModelAdmin):
    list_display = ("report", "file_url", "category", "status", "scanned_at")
    list_filter = ("status", "category")
