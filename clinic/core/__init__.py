from .interfaces import AppointmentStore, EmailSender, UserStore
from .models import (
    Appointment,
    AppointmentStatus,
    Notification,
    NotificationType,
)

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "AppointmentStore",
    "EmailSender",
    "Notification",
    "NotificationType",
    "UserStore",
]
