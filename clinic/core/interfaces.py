from datetime import datetime
from typing import Optional, Protocol, Sequence

from clinic.core.models import Appointment


class AppointmentStore(Protocol):
    """Source of appointments, owns their transactional consistency."""

    async def get_appointment_by_id(self, appointment_id: str) -> Optional[Appointment]:
        """Return the appointment or None when it does not exist."""
        ...

    async def list_appointments(self) -> Sequence[Appointment]:
        """Return all appointments."""
        ...

    async def mark_completed_if_past_due(self, now: Optional[datetime] = None) -> int:
        """Complete scheduled appointments that are already in the past.

        Returns:
            Number of appointments updated.
        """
        ...


class UserStore(Protocol):
    """Lookup of patient contact data."""

    async def get_email_by_user_id(self, user_id: str) -> Optional[str]:
        """Return the user's email or None when it is unknown."""
        ...


class EmailSender(Protocol):
    """Email transport."""

    async def send(
        self,
        to_email: str,
        to_name: str,
        subject: str,
        html_body: str,
        plain_text_body: str,
    ) -> bool:
        """Send one message, return whether the transport accepted it."""
        ...
