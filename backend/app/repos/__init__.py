from app.repos.notification_store import NotificationStore

__all__ = ["NotificationStore"]
