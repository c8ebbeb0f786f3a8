from django.apps import AppConfig


class CommandersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "commanders"
    verbose_name = "Unit Commanders"
