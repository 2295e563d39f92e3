import threading
from typing import Optional

from loguru import logger

from clinic.core.models import Notification, NotificationType


class NotificationStore:
    """In-memory store of in-app notifications.

    Records live as long as the store instance. Every read returns copies,
    so callers never mutate stored records outside of the lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._notifications: dict[str, Notification] = {}

    def add(self, notification: Notification) -> Notification:
        """Persist a notification and return its stored copy."""
        with self._lock:
            stored = notification.model_copy()
            self._notifications[stored.id] = stored
        logger.info(
            f"Notification created for user {stored.user_id} "
            f"with type {stored.type.value}",
        )
        return stored.model_copy()

    def get(self, notification_id: str) -> Optional[Notification]:
        """Return one notification or None."""
        with self._lock:
            notification = self._notifications.get(notification_id)
            return notification.model_copy() if notification else None

    def find_for_appointment(
        self,
        appointment_id: str,
        notification_type: NotificationType,
        slot: Optional[str] = None,
    ) -> Optional[Notification]:
        """Return the oldest notification of a type for an appointment.

        With ``slot`` only a notification about that date and time matches.
        """
        with self._lock:
            for notification in self._notifications.values():
                if (
                    notification.appointment_id == appointment_id
                    and notification.type == notification_type
                    and (slot is None or notification.appointment_slot == slot)
                ):
                    return notification.model_copy()
        return None

    def get_user_notifications(self, user_id: str) -> list[Notification]:
        """Return the user's notifications, newest first."""
        with self._lock:
            found = [
                n.model_copy()
                for n in self._notifications.values()
                if n.user_id == user_id
            ]
        return sorted(found, key=lambda n: n.created_at, reverse=True)

    def mark_as_read(self, notification_id: str) -> bool:
        """Flag a notification as read, False when it does not exist."""
        with self._lock:
            notification = self._notifications.get(notification_id)
            if notification is None:
                return False
            notification.is_read = True
        logger.info(f"Notification {notification_id} marked as read")
        return True

    def set_email_sent(self, notification_id: str, email_sent: bool) -> bool:
        """Record the email outcome, False when the notification does not exist."""
        with self._lock:
            notification = self._notifications.get(notification_id)
            if notification is None:
                return False
            notification.email_sent = email_sent
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._notifications)
