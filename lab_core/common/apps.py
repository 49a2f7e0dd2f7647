from django.apps import AppConfig


class CommonConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "lab_core.common"

    def ready(self):
        from lab_core.common.logging import setup_logging

        setup_logging()
