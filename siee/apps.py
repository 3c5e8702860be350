from django.apps import AppConfig


class SieeConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "siee"
    verbose_name = "SIEE grading engine"
