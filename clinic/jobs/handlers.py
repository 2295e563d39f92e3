from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from loguru import logger

from clinic.core.models import AppointmentStatus, NotificationType
from clinic.jobs.models import JobKind, JobResult

if TYPE_CHECKING:
    from clinic.core.interfaces import AppointmentStore
    from clinic.core.models import Appointment
    from clinic.jobs.queue import Handler
    from clinic.notifications.dispatcher import NotificationDispatcher


class AppointmentJobs:
    """Handlers for appointment background jobs.

    Every handler is safe to run more than once for the same appointment:
    jobs are delivered at least once.
    """

    def __init__(
        self,
        appointment_store: AppointmentStore,
        dispatcher: NotificationDispatcher,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._appointments = appointment_store
        self._dispatcher = dispatcher
        self._clock = clock

    def handlers(self) -> dict[JobKind, Handler]:
        """Handlers by job kind, as expected by ``JobQueue``."""
        return {
            JobKind.CREATED_EMAIL: self._with_appointment_id(
                self.process_appointment_created_email,
            ),
            JobKind.REMINDER: self._with_appointment_id(
                self.process_appointment_reminder,
            ),
            JobKind.STATUS_SWEEP: self._without_payload(
                self.process_past_appointments_status_sweep,
            ),
        }

    async def process_appointment_created_email(self, appointment_id: str) -> JobResult:
        """Send the confirmation of a new appointment."""
        logger.info(f"Processing appointment creation email for {appointment_id}")

        appointment, error = await self._load(appointment_id)
        if error:
            return error
        if appointment is None:
            logger.warning(
                f"Appointment {appointment_id} not found - skipping creation email",
            )
            return JobResult.ok("appointment not found")

        return await self._dispatch(NotificationType.APPOINTMENT_CREATED, appointment)

    async def process_appointment_reminder(self, appointment_id: str) -> JobResult:
        """Remind the patient of an appointment that is still scheduled."""
        logger.info(f"Processing appointment reminder for {appointment_id}")

        appointment, error = await self._load(appointment_id)
        if error:
            return error
        if appointment is None or appointment.status != AppointmentStatus.SCHEDULED:
            logger.warning(
                f"Appointment {appointment_id} not found or not scheduled - "
                f"skipping reminder",
            )
            return JobResult.ok("appointment no longer scheduled")

        return await self._dispatch(NotificationType.APPOINTMENT_REMINDER, appointment)

    async def process_past_appointments_status_sweep(self) -> JobResult:
        """Complete scheduled appointments whose time has passed."""
        logger.info("Processing past appointments status update job")
        try:
            updated = await self._appointments.mark_completed_if_past_due(self._clock())
        except Exception as e:
            logger.error(f"Failed to update past appointments status: {e}")
            return JobResult.retry(f"appointment store error: {e}")

        if updated > 0:
            logger.info(
                f"Updated {updated} past appointments from scheduled to completed",
            )
        else:
            logger.info("No past appointments found to update")
        return JobResult.ok(f"{updated} appointments completed")

    async def _load(
        self,
        appointment_id: str,
    ) -> tuple[Optional[Appointment], Optional[JobResult]]:
        try:
            return await self._appointments.get_appointment_by_id(appointment_id), None
        except Exception as e:
            logger.error(f"Failed to load appointment {appointment_id}: {e}")
            return None, JobResult.retry(f"appointment store error: {e}")

    async def _dispatch(
        self,
        event: NotificationType,
        appointment: Appointment,
    ) -> JobResult:
        if await self._dispatcher.dispatch(event, appointment, dedupe=True):
            logger.info(
                f"{event.value} processed successfully for {appointment.id}",
            )
            return JobResult.ok()
        return JobResult.retry(f"{event.value} email for {appointment.id} not sent")

    @staticmethod
    def _with_appointment_id(
        process: Callable[[str], Awaitable[JobResult]],
    ) -> Handler:
        async def handler(payload: Optional[str]) -> JobResult:
            if not payload:
                return JobResult.fail("job has no appointment id")
            return await process(payload)

        return handler

    @staticmethod
    def _without_payload(process: Callable[[], Awaitable[JobResult]]) -> Handler:
        async def handler(payload: Optional[str]) -> JobResult:
            return await process()

        return handler
