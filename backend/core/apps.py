from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core"
    verbose_name = "Core"

    def ready(self):
        from core.domain.events import EntityChangeBus, EventType

        from .services import SystemMetricsService

        for table in ("reports.Report", "assignments.Assignment"):
            for event_type in (EventType.INSERT, EventType.UPDATE):
                EntityChangeBus.on_entity_changed(
                    table, event_type, SystemMetricsService.handle_change,
                )
