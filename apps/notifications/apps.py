from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.notifications"

    def ready(self) -> None:
        from shared.application.message_bus import message_bus
        from apps.bookings.domain.events import BookingCreated
        from apps.students.events import StudentRegistered

        from .handlers import dispatch_receipt, dispatch_welcome

        message_bus.register_event_handler(BookingCreated, dispatch_receipt)
        message_bus.register_event_handler(StudentRegistered, dispatch_welcome)
