"""Pydantic models shared by the job core and its collaborators."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

APPOINTMENT_DATE_FORMAT = "%Y-%m-%d"
APPOINTMENT_TIME_FORMAT = "%H:%M"


class AppointmentStatus(str, Enum):
    """Appointment lifecycle statuses."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class NotificationType(str, Enum):
    """Appointment lifecycle events a patient is notified about."""

    APPOINTMENT_CREATED = "appointment_created"
    APPOINTMENT_MODIFIED = "appointment_modified"
    APPOINTMENT_REMINDER = "appointment_reminder"
    APPOINTMENT_CANCELLED = "appointment_cancelled"
    APPOINTMENT_COMPLETED = "appointment_completed"


class Appointment(BaseModel):
    """Appointment as seen by the job core."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="ID of the appointment")
    client_id: str = Field(..., description="ID of the patient")
    client_name: str = Field("", description="Full name of the patient")
    doctor_name: str = Field("", description="Full name of the doctor")
    doctor_specialization: str = Field("", description="Doctor specialization")
    date: str = Field(..., description="Appointment date, YYYY-MM-DD")
    time: str = Field(..., description="Appointment time, HH:MM")
    status: AppointmentStatus = Field(AppointmentStatus.SCHEDULED)
    reason: str = Field("", description="Reason for the visit")
    notes: Optional[str] = Field(None, description="Additional notes")

    @property
    def scheduled_at(self) -> datetime:
        """Local date and time of the appointment.

        Raises:
            ValueError: If ``date`` or ``time`` is not in the expected format.
        """
        return datetime.strptime(
            f"{self.date} {self.time}",
            f"{APPOINTMENT_DATE_FORMAT} {APPOINTMENT_TIME_FORMAT}",
        )

    @property
    def slot(self) -> str:
        """Date and time of the visit as one string."""
        return f"{self.date} {self.time}"


class Notification(BaseModel):
    """In-app notification for a patient."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    title: str
    message: str
    type: NotificationType
    appointment_id: Optional[str] = None
    appointment_slot: Optional[str] = None  # "YYYY-MM-DD HH:MM" of the visit
    created_at: datetime = Field(default_factory=datetime.now)
    is_read: bool = False
    email_sent: bool = False
