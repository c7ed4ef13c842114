from django.apps import AppConfig


class BoletosConfig(AppConfig):
    name = "boletos"
    verbose_name = "Boletos"

    def ready(self):
        from . import checks  # noqa: F401
