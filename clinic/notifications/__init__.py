from .dispatcher import NotificationDispatcher
from .smtp import SmtpEmailSender
from .store import NotificationStore

__all__ = ["NotificationDispatcher", "NotificationStore", "SmtpEmailSender"]
