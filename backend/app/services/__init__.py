from app.services.assignment_reminder_service import NotificationDispatcher, build_reminder_message, today_iso
from app.services.fcm import FcmTransport, MulticastMessage

__all__ = ["NotificationDispatcher", "build_reminder_message", "today_iso", "FcmTransport", "MulticastMessage"]
