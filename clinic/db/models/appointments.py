from datetime import date, datetime, time
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Text, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic.core.models import AppointmentStatus
from clinic.db.base import Base
from clinic.db.types import content_an, created_at_an, user_id_an

if TYPE_CHECKING:
    from clinic.db.models.doctors import Doctor
    from clinic.db.models.users import User


class Appointment(Base):
    """Appointment model."""

    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[user_id_an] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
    )
    doctor_id: Mapped[int] = mapped_column(ForeignKey("doctors.id"), nullable=False)

    # Local date and time of the visit
    appointment_date: Mapped[date] = mapped_column(Date, nullable=False)
    appointment_time: Mapped[time] = mapped_column(Time, nullable=False)

    reason: Mapped[str] = mapped_column(Text, nullable=False)
    notes: Mapped[content_an]

    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(AppointmentStatus),
        default=AppointmentStatus.SCHEDULED,
    )

    created_at: Mapped[created_at_an]
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Relations
    patient: Mapped["User"] = relationship(
        back_populates="appointments",
        lazy="selectin",
    )
    doctor: Mapped["Doctor"] = relationship(
        back_populates="appointments",
        lazy="selectin",
    )

    @property
    def scheduled_at(self) -> datetime:
        """Combined local date and time of the visit."""
        return datetime.combine(self.appointment_date, self.appointment_time)
