from django.apps import AppConfig


class ScreeningConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "dt_core.screening"

    def ready(self):
        # Import the signals package; __init__.py imports the receivers
        import dt_core.screening.signals  # noqa: F401
