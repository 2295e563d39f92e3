from datetime import datetime
from typing import Sequence

from clinic.core.models import AppointmentStatus
from clinic.db.models.appointments import Appointment
from clinic.db.services.base import BaseService


class AppointmentsService(BaseService[Appointment]):
    """Service for working with appointments."""

    model = Appointment

    async def get_appointment_by_id(self, appointment_id: int) -> Appointment | None:
        """Get appointment by ID."""
        return await self.find_one_or_none(id=appointment_id)

    async def find_all_ordered(self) -> Sequence[Appointment]:
        """Retrieve all appointments, earliest visit first."""
        return await self.find_all_where(
            order_by=[Appointment.appointment_date, Appointment.appointment_time],
        )

    async def find_past_due(self, now: datetime) -> list[Appointment]:
        """
        Retrieve scheduled appointments whose date and time are before ``now``.

        Args:
            now: Local time to compare against.

        Returns:
            Appointments eligible for automatic completion.
        """
        candidates = await self.find_all_where(
            Appointment.status == AppointmentStatus.SCHEDULED,
            Appointment.appointment_date <= now.date(),
        )
        return [a for a in candidates if a.scheduled_at < now]

    async def mark_completed_if_past_due(self, now: datetime) -> int:
        """
        Complete every scheduled appointment that is already in the past.

        Args:
            now: Local time to compare against, also used as completion stamp.

        Returns:
            Number of appointments updated.
        """
        past_due = await self.find_past_due(now)
        for appointment in past_due:
            await self.update_by_model(
                appointment,
                status=AppointmentStatus.COMPLETED,
                completed_at=now,
            )
        return len(past_due)
