from typing import Optional

from loguru import logger
from pydantic import EmailStr, TypeAdapter, ValidationError

from clinic.core.interfaces import EmailSender, UserStore
from clinic.core.models import Appointment, Notification, NotificationType
from clinic.notifications.store import NotificationStore
from clinic.notifications.templates import (
    SUPPORTED_EVENTS,
    EmailContent,
    notification_message,
    notification_title,
    render_email,
)
from clinic.settings import settings

_email_adapter: TypeAdapter[str] = TypeAdapter(EmailStr)


def is_valid_email(email: Optional[str]) -> bool:
    """Check that ``email`` is a syntactically valid address."""
    if not email or not email.strip():
        return False
    try:
        _email_adapter.validate_python(email.strip())
    except ValidationError:
        return False
    return True


class NotificationDispatcher:
    """Creates in-app notifications and emails them to patients."""

    def __init__(
        self,
        store: NotificationStore,
        user_store: UserStore,
        email_sender: EmailSender,
        fallback_email: Optional[str] = None,
        clinic_name: Optional[str] = None,
    ) -> None:
        self._store = store
        self._user_store = user_store
        self._email_sender = email_sender
        self._fallback_email = fallback_email or settings.EMAIL_FALLBACK_ADDRESS
        self._clinic_name = clinic_name or settings.CLINIC_NAME

    @property
    def store(self) -> NotificationStore:
        """Store the dispatcher writes to."""
        return self._store

    async def dispatch(
        self,
        event: NotificationType,
        appointment: Appointment,
        *,
        dedupe: bool = False,
    ) -> bool:
        """
        Notify the patient of an appointment event in-app and by email.

        The in-app notification is always kept, even when the email fails.
        With ``dedupe`` an earlier notification of the same type for the
        appointment at the same date and time is reused, and nothing is sent
        if its email already went out. A rescheduled appointment is notified again.

        Args:
            event: Created, modified, reminder or cancelled.
            appointment: Appointment the event is about.
            dedupe: Reuse an existing notification of this type and slot.

        Returns:
            False if the email transport failed, True otherwise.

        Raises:
            ValueError: If ``event`` cannot be dispatched.
        """
        if event not in SUPPORTED_EVENTS:
            raise ValueError(f"Cannot dispatch {event.value} notifications")

        notification: Optional[Notification] = None
        if dedupe:
            notification = self._store.find_for_appointment(
                appointment.id,
                event,
                slot=appointment.slot,
            )
            if notification is not None and notification.email_sent:
                logger.info(
                    f"{event.value} notification for appointment "
                    f"{appointment.id} already delivered",
                )
                return True

        if notification is None:
            notification = self._store.add(
                Notification(
                    user_id=appointment.client_id,
                    title=notification_title(event),
                    message=notification_message(event, appointment),
                    type=event,
                    appointment_id=appointment.id,
                    appointment_slot=appointment.slot,
                ),
            )

        to_email, is_patient_address = await self._resolve_email(
            appointment.client_id,
        )
        content = render_email(event, appointment, self._clinic_name)
        delivered = await self._send(to_email, appointment.client_name, content)

        self._store.set_email_sent(notification.id, delivered and is_patient_address)

        if delivered:
            logger.info(
                f"{event.value} notifications sent for appointment {appointment.id}",
            )
        else:
            logger.warning(
                f"{event.value} email for appointment {appointment.id} was not "
                f"delivered, in-app notification {notification.id} kept",
            )
        return delivered

    async def send_appointment_created(self, appointment: Appointment) -> bool:
        """Notify about a new appointment."""
        return await self.dispatch(NotificationType.APPOINTMENT_CREATED, appointment)

    async def send_appointment_modified(self, appointment: Appointment) -> bool:
        """Notify about a changed appointment."""
        return await self.dispatch(NotificationType.APPOINTMENT_MODIFIED, appointment)

    async def send_appointment_reminder(self, appointment: Appointment) -> bool:
        """Remind about an upcoming appointment."""
        return await self.dispatch(NotificationType.APPOINTMENT_REMINDER, appointment)

    async def send_appointment_cancelled(self, appointment: Appointment) -> bool:
        """Notify about a cancelled appointment."""
        return await self.dispatch(
            NotificationType.APPOINTMENT_CANCELLED,
            appointment,
        )

    async def _resolve_email(self, user_id: str) -> tuple[str, bool]:
        # Falls back to the sentinel address, the flag tells if it is the patient's
        if not user_id or not user_id.strip():
            logger.warning("Client id is empty. Using fallback email.")
            return self._fallback_email, False

        try:
            email = await self._user_store.get_email_by_user_id(user_id)
        except Exception as e:
            logger.error(f"Failed to retrieve email for client {user_id}: {e}")
            return self._fallback_email, False

        if email is None or not is_valid_email(email):
            logger.warning(
                f"No valid email for client {user_id} ({email!r}). "
                f"Using fallback email.",
            )
            return self._fallback_email, False

        return email.strip(), True

    async def _send(self, to_email: str, to_name: str, content: EmailContent) -> bool:
        try:
            return await self._email_sender.send(
                to_email,
                to_name or "Patient",
                content.subject,
                content.html_body,
                content.plain_text_body,
            )
        except Exception as e:
            logger.exception(f"Error sending email to {to_email}: {e}")
            return False
