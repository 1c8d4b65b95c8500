from django.apps import AppConfig


class ReservationsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.reservations"
    label = "reservations"

    def ready(self):
        from shared.application.message_bus import message_bus

        from . import handlers  # noqa: F401
        from .services import register_handlers

        register_handlers(message_bus)
