from datetime import datetime, timedelta
from typing import Callable, Optional

from loguru import logger

from clinic.core.models import Appointment
from clinic.jobs.models import JobKind, QueueName
from clinic.jobs.queue import JobQueue

REMINDER_OFFSET = timedelta(hours=1)


class AppointmentJobTriggers:
    """Entry points used by the appointment creation request path.

    All calls only post jobs onto the queue: they never block and never
    raise into the caller.
    """

    def __init__(
        self,
        queue: JobQueue,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._queue = queue
        self._clock = clock

    def enqueue_appointment_created_job(self, appointment: Appointment) -> Optional[str]:
        """Queue the creation notification, returns the job id."""
        try:
            job_id = self._queue.enqueue(
                JobKind.CREATED_EMAIL,
                appointment.id,
                QueueName.NOTIFICATIONS,
            )
        except Exception as e:
            logger.error(
                f"Failed to enqueue appointment creation email for "
                f"{appointment.id}: {e}",
            )
            return None

        logger.info(
            f"Appointment creation email job enqueued for {appointment.id} "
            f"with job id {job_id}",
        )
        return job_id

    def schedule_reminder_job(self, appointment: Appointment) -> Optional[str]:
        """
        Schedule the reminder one hour before the appointment.

        Nothing is scheduled when that moment is not in the future.

        Returns:
            The job id, or None when no reminder was scheduled.
        """
        try:
            reminder_time = appointment.scheduled_at - REMINDER_OFFSET
        except ValueError as e:
            logger.error(
                f"Cannot schedule reminder for {appointment.id}, "
                f"bad date or time: {e}",
            )
            return None

        if reminder_time <= self._clock():
            logger.warning(
                f"Cannot schedule reminder for appointment {appointment.id} "
                f"at {appointment.date} {appointment.time}: reminder time "
                f"{reminder_time} has already passed",
            )
            return None

        try:
            job_id = self._queue.schedule(
                JobKind.REMINDER,
                appointment.id,
                QueueName.NOTIFICATIONS,
                reminder_time,
            )
        except Exception as e:
            logger.error(f"Failed to schedule reminder for {appointment.id}: {e}")
            return None

        logger.info(
            f"Appointment reminder scheduled for {appointment.id} "
            f"at {reminder_time} with job id {job_id}",
        )
        return job_id

    def on_appointment_created(self, appointment: Appointment) -> None:
        """Queue every job a new appointment needs."""
        self.enqueue_appointment_created_job(appointment)
        self.schedule_reminder_job(appointment)
