from django.apps import AppConfig


class ReportsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "reports"
    verbose_name = "Reports"

    def ready(self):
        from core.domain.events import EntityChangeBus, EventType

        from .scanning import FileScanService

        EntityChangeBus.on_entity_changed(
            "reports.Report", EventType.INSERT, FileScanService.handle_report_created,
        )
