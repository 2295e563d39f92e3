"""SQL implementations of the appointment and user stores."""

from datetime import datetime
from typing import Callable, Optional, Sequence

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinic.core.models import (
    APPOINTMENT_DATE_FORMAT,
    APPOINTMENT_TIME_FORMAT,
    Appointment,
)
from clinic.db.context import get_or_create_session
from clinic.db.models.appointments import Appointment as AppointmentRow
from clinic.db.services import AppointmentsService, UsersService


def to_appointment(row: AppointmentRow) -> Appointment:
    """Map an appointment row with its relations onto the shared model."""
    return Appointment(
        id=str(row.id),
        client_id=row.patient_id,
        client_name=row.patient.full_name if row.patient else "",
        doctor_name=row.doctor.name if row.doctor else "",
        doctor_specialization=row.doctor.specialization if row.doctor else "",
        date=row.appointment_date.strftime(APPOINTMENT_DATE_FORMAT),
        time=row.appointment_time.strftime(APPOINTMENT_TIME_FORMAT),
        status=row.status,
        reason=row.reason,
        notes=row.notes,
    )


class SqlAppointmentStore:
    """Appointment store backed by the clinic database."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    async def get_appointment_by_id(self, appointment_id: str) -> Optional[Appointment]:
        try:
            row_id = int(appointment_id)
        except (TypeError, ValueError):
            logger.warning(f"Malformed appointment id {appointment_id!r}")
            return None

        async with get_or_create_session(self._session_factory) as session:
            row = await AppointmentsService(session).get_appointment_by_id(row_id)
            return to_appointment(row) if row else None

    async def list_appointments(self) -> Sequence[Appointment]:
        async with get_or_create_session(self._session_factory) as session:
            rows = await AppointmentsService(session).find_all_ordered()
            return [to_appointment(row) for row in rows]

    async def mark_completed_if_past_due(self, now: Optional[datetime] = None) -> int:
        async with get_or_create_session(self._session_factory) as session:
            return await AppointmentsService(session).mark_completed_if_past_due(
                now or self._clock(),
            )

    async def list_past_due(self, now: Optional[datetime] = None) -> list[Appointment]:
        """Appointments the next sweep would complete."""
        async with get_or_create_session(self._session_factory) as session:
            rows = await AppointmentsService(session).find_past_due(
                now or self._clock(),
            )
            return [to_appointment(row) for row in rows]


class SqlUserStore:
    """User store backed by the clinic database."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_email_by_user_id(self, user_id: str) -> Optional[str]:
        async with get_or_create_session(self._session_factory) as session:
            user = await UsersService(session).get_user_by_id(user_id)
            if user is None or not user.email:
                return None
            return user.email.strip()
