"""
Shared pytest fixtures for all tests.

In-memory fakes for the appointment store, user store and email sender,
a controllable clock and an in-memory SQLite database for the SQL stores.
"""

from datetime import datetime, timedelta
from typing import AsyncGenerator, Optional, Sequence

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from clinic.core.models import Appointment, AppointmentStatus
from clinic.db.base import Base
from clinic.db.models import load_all_models
from clinic.jobs import AppointmentJobs
from clinic.notifications import NotificationDispatcher, NotificationStore

T0 = datetime(2026, 3, 10, 9, 0)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class FakeAppointmentStore:
    """Appointment store keeping appointments in a dict."""

    def __init__(self) -> None:
        self.appointments: dict[str, Appointment] = {}
        self.completed_at: dict[str, datetime] = {}
        self.error: Optional[Exception] = None
        self.lookups = 0

    def add(self, appointment: Appointment) -> Appointment:
        self.appointments[appointment.id] = appointment
        return appointment

    def set_status(self, appointment_id: str, status: AppointmentStatus) -> None:
        self.appointments[appointment_id] = self.appointments[
            appointment_id
        ].model_copy(update={"status": status})

    async def get_appointment_by_id(self, appointment_id: str) -> Optional[Appointment]:
        self.lookups += 1
        if self.error:
            raise self.error
        return self.appointments.get(appointment_id)

    async def list_appointments(self) -> Sequence[Appointment]:
        return list(self.appointments.values())

    async def mark_completed_if_past_due(self, now: Optional[datetime] = None) -> int:
        if self.error:
            raise self.error
        now = now or datetime.now()
        updated = 0
        for appointment in list(self.appointments.values()):
            if (
                appointment.status == AppointmentStatus.SCHEDULED
                and appointment.scheduled_at < now
            ):
                self.set_status(appointment.id, AppointmentStatus.COMPLETED)
                self.completed_at[appointment.id] = now
                updated += 1
        return updated


class FakeUserStore:
    """User store returning emails from a dict."""

    def __init__(self, emails: Optional[dict[str, str]] = None) -> None:
        self.emails = emails or {}
        self.error: Optional[Exception] = None

    async def get_email_by_user_id(self, user_id: str) -> Optional[str]:
        if self.error:
            raise self.error
        return self.emails.get(user_id)


class FakeEmailSender:
    """Email sender recording every message."""

    def __init__(self, result: bool = True) -> None:
        self.result = result
        self.error: Optional[Exception] = None
        self.sent: list[dict[str, str]] = []

    async def send(
        self,
        to_email: str,
        to_name: str,
        subject: str,
        html_body: str,
        plain_text_body: str,
    ) -> bool:
        self.sent.append(
            {
                "to_email": to_email,
                "to_name": to_name,
                "subject": subject,
                "html_body": html_body,
                "plain_text_body": plain_text_body,
            },
        )
        if self.error:
            raise self.error
        return self.result


def make_appointment(
    appointment_id: str = "1",
    at: datetime = T0 + timedelta(hours=3),
    status: AppointmentStatus = AppointmentStatus.SCHEDULED,
    client_id: str = "patient-1",
) -> Appointment:
    return Appointment(
        id=appointment_id,
        client_id=client_id,
        client_name="Jane Roe",
        doctor_name="Dr. Gregory House",
        doctor_specialization="Diagnostics",
        date=at.strftime("%Y-%m-%d"),
        time=at.strftime("%H:%M"),
        status=status,
        reason="Annual check-up",
        notes="Fasting",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def appointment_store() -> FakeAppointmentStore:
    return FakeAppointmentStore()


@pytest.fixture
def user_store() -> FakeUserStore:
    return FakeUserStore({"patient-1": "jane.roe@clinicmail.com"})


@pytest.fixture
def email_sender() -> FakeEmailSender:
    return FakeEmailSender()


@pytest.fixture
def notification_store() -> NotificationStore:
    return NotificationStore()


@pytest.fixture
def dispatcher(
    notification_store: NotificationStore,
    user_store: FakeUserStore,
    email_sender: FakeEmailSender,
) -> NotificationDispatcher:
    return NotificationDispatcher(
        notification_store,
        user_store,
        email_sender,
        fallback_email="frontdesk@clinicmail.com",
        clinic_name="Riverside Clinic",
    )


@pytest.fixture
def jobs(
    appointment_store: FakeAppointmentStore,
    dispatcher: NotificationDispatcher,
    clock: FakeClock,
) -> AppointmentJobs:
    return AppointmentJobs(appointment_store, dispatcher, clock=clock)


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory over a fresh in-memory SQLite database."""
    load_all_models()
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()
