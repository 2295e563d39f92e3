from dataclasses import dataclass
from datetime import timedelta

from loguru import logger

from clinic.jobs.models import JobKind, QueueName
from clinic.jobs.queue import JobQueue

PAST_APPOINTMENTS_JOB = "update-past-appointments-status"


@dataclass
class RecurringJobsConfig:
    """Configuration of the recurring jobs."""

    sweep_interval_seconds: float = 3600  # Every hour


class RecurringJobRegistrar:
    """Registers the recurring maintenance jobs on startup."""

    def __init__(
        self,
        queue: JobQueue,
        config: RecurringJobsConfig | None = None,
    ) -> None:
        self._queue = queue
        self._config = config or RecurringJobsConfig()

    def register(self) -> None:
        """
        Register every recurring job, safe to call on each start.

        Raises:
            Exception: Any registration error, the process must not run without
                its maintenance sweep.
        """
        logger.info("Setting up recurring jobs...")
        try:
            self._queue.add_or_update_recurring(
                PAST_APPOINTMENTS_JOB,
                JobKind.STATUS_SWEEP,
                QueueName.MAINTENANCE,
                timedelta(seconds=self._config.sweep_interval_seconds),
            )
        except Exception as e:
            logger.exception(f"An error occurred while setting up recurring jobs: {e}")
            raise

        logger.info(
            f"Recurring job '{PAST_APPOINTMENTS_JOB}' scheduled to run every "
            f"{self._config.sweep_interval_seconds:g} seconds",
        )
