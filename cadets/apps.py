from django.apps import AppConfig


class CadetsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "cadets"
    verbose_name = "Cadets"
