from datetime import date, datetime, time

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinic.core.models import AppointmentStatus
from clinic.db.context import get_or_create_session
from clinic.db.models import Appointment, Doctor, User
from clinic.db.services import AppointmentsService
from clinic.db.stores import SqlAppointmentStore, SqlUserStore

NOW = datetime(2026, 3, 10, 12, 0)


@pytest_asyncio.fixture
async def seeded(session_factory: async_sessionmaker[AsyncSession]):
    async with get_or_create_session(session_factory) as session:
        session.add_all(
            [
                User(
                    id="patient-1",
                    email=" jane.roe@clinicmail.com ",
                    first_name="Jane",
                    last_name="Roe",
                ),
                User(id="patient-2", email=None, first_name="John"),
                Doctor(id=1, name="Dr. Gregory House", specialization="Diagnostics"),
            ],
        )
        await session.flush()
        session.add_all(
            [
                # Earlier today, still scheduled
                Appointment(
                    id=1,
                    patient_id="patient-1",
                    doctor_id=1,
                    appointment_date=date(2026, 3, 10),
                    appointment_time=time(9, 30),
                    reason="Annual check-up",
                    notes="Fasting",
                    status=AppointmentStatus.SCHEDULED,
                ),
                # Later today
                Appointment(
                    id=2,
                    patient_id="patient-1",
                    doctor_id=1,
                    appointment_date=date(2026, 3, 10),
                    appointment_time=time(15, 0),
                    reason="Follow-up",
                    status=AppointmentStatus.SCHEDULED,
                ),
                # Yesterday, cancelled
                Appointment(
                    id=3,
                    patient_id="patient-2",
                    doctor_id=1,
                    appointment_date=date(2026, 3, 9),
                    appointment_time=time(10, 0),
                    reason="Consultation",
                    status=AppointmentStatus.CANCELLED,
                ),
                # Last week, scheduled
                Appointment(
                    id=4,
                    patient_id="patient-2",
                    doctor_id=1,
                    appointment_date=date(2026, 3, 3),
                    appointment_time=time(11, 0),
                    reason="Blood test",
                    status=AppointmentStatus.SCHEDULED,
                ),
            ],
        )
    return session_factory


class TestSqlAppointmentStore:
    """Appointment store backed by the database"""

    @pytest.mark.asyncio
    async def test_appointment_is_mapped_with_relations(self, seeded):
        store = SqlAppointmentStore(seeded, clock=lambda: NOW)

        appointment = await store.get_appointment_by_id("1")

        assert appointment is not None
        assert appointment.id == "1"
        assert appointment.client_id == "patient-1"
        assert appointment.client_name == "Jane Roe"
        assert appointment.doctor_name == "Dr. Gregory House"
        assert appointment.doctor_specialization == "Diagnostics"
        assert appointment.date == "2026-03-10"
        assert appointment.time == "09:30"
        assert appointment.status == AppointmentStatus.SCHEDULED
        assert appointment.notes == "Fasting"
        assert appointment.scheduled_at == datetime(2026, 3, 10, 9, 30)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("appointment_id", ["404", "abc", ""])
    async def test_unknown_or_malformed_id_returns_none(self, seeded, appointment_id):
        store = SqlAppointmentStore(seeded)

        assert await store.get_appointment_by_id(appointment_id) is None

    @pytest.mark.asyncio
    async def test_list_appointments_is_ordered_by_visit(self, seeded):
        store = SqlAppointmentStore(seeded)

        appointments = await store.list_appointments()

        assert [a.id for a in appointments] == ["4", "3", "1", "2"]

    @pytest.mark.asyncio
    async def test_list_past_due(self, seeded):
        store = SqlAppointmentStore(seeded, clock=lambda: NOW)

        past_due = await store.list_past_due()

        assert sorted(a.id for a in past_due) == ["1", "4"]

    @pytest.mark.asyncio
    async def test_sweep_completes_only_past_scheduled(self, seeded):
        store = SqlAppointmentStore(seeded, clock=lambda: NOW)

        assert await store.mark_completed_if_past_due() == 2

        statuses = {a.id: a.status for a in await store.list_appointments()}
        assert statuses == {
            "1": AppointmentStatus.COMPLETED,
            "2": AppointmentStatus.SCHEDULED,
            "3": AppointmentStatus.CANCELLED,
            "4": AppointmentStatus.COMPLETED,
        }
        async with get_or_create_session(seeded) as session:
            row = await AppointmentsService(session).get_appointment_by_id(1)
            assert row is not None
            assert row.completed_at == NOW

    @pytest.mark.asyncio
    async def test_second_sweep_updates_nothing(self, seeded):
        store = SqlAppointmentStore(seeded, clock=lambda: NOW)

        await store.mark_completed_if_past_due()

        assert await store.mark_completed_if_past_due() == 0

    @pytest.mark.asyncio
    async def test_explicit_now_overrides_clock(self, seeded):
        store = SqlAppointmentStore(seeded, clock=lambda: NOW)

        assert await store.mark_completed_if_past_due(datetime(2026, 3, 10, 16, 0)) == 3


class TestSqlUserStore:
    """User email lookup"""

    @pytest.mark.asyncio
    async def test_email_is_stripped(self, seeded):
        store = SqlUserStore(seeded)

        assert await store.get_email_by_user_id("patient-1") == "jane.roe@clinicmail.com"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_id", ["patient-2", "nobody"])
    async def test_missing_email_is_none(self, seeded, user_id):
        store = SqlUserStore(seeded)

        assert await store.get_email_by_user_id(user_id) is None
