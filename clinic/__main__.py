import asyncio
import signal
from dataclasses import dataclass

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncEngine

from clinic.db.engine import close_engine, create_engine, create_session_factory
from clinic.db.stores import SqlAppointmentStore, SqlUserStore
from clinic.jobs import (
    AppointmentJobs,
    AppointmentJobTriggers,
    JobQueue,
    JobQueueConfig,
    QueueName,
    RecurringJobRegistrar,
    RecurringJobsConfig,
)
from clinic.notifications import (
    NotificationDispatcher,
    NotificationStore,
    SmtpEmailSender,
)
from clinic.settings import Settings, settings
from clinic.settings.logging import setup_logging


@dataclass
class Application:
    """Objects living for the whole process."""

    engine: AsyncEngine
    notifications: NotificationStore
    queue: JobQueue
    triggers: AppointmentJobTriggers
    registrar: RecurringJobRegistrar


def build_application(config: Settings = settings) -> Application:
    """Wire stores, dispatcher, handlers and the job queue together."""
    engine = create_engine(str(config.db_url), config.DB_ECHO)
    session_factory = create_session_factory(engine)

    notifications = NotificationStore()
    dispatcher = NotificationDispatcher(
        notifications,
        SqlUserStore(session_factory),
        SmtpEmailSender(config),
        fallback_email=config.EMAIL_FALLBACK_ADDRESS,
        clinic_name=config.CLINIC_NAME,
    )
    jobs = AppointmentJobs(SqlAppointmentStore(session_factory), dispatcher)
    queue = JobQueue(
        jobs.handlers(),
        JobQueueConfig(
            poll_interval_seconds=config.JOB_POLL_INTERVAL_SECONDS,
            max_attempts=config.JOB_MAX_ATTEMPTS,
            backoff_base_seconds=config.JOB_BACKOFF_BASE_SECONDS,
            backoff_max_seconds=config.JOB_BACKOFF_MAX_SECONDS,
            workers={
                QueueName.DEFAULT: config.DEFAULT_WORKERS,
                QueueName.NOTIFICATIONS: config.NOTIFICATIONS_WORKERS,
                QueueName.MAINTENANCE: config.MAINTENANCE_WORKERS,
            },
        ),
    )
    return Application(
        engine=engine,
        notifications=notifications,
        queue=queue,
        triggers=AppointmentJobTriggers(queue),
        registrar=RecurringJobRegistrar(
            queue,
            RecurringJobsConfig(sweep_interval_seconds=config.SWEEP_INTERVAL_SECONDS),
        ),
    )


async def on_startup(app: Application) -> None:
    """Register recurring jobs and start the workers."""
    app.registrar.register()
    await app.queue.start()
    logger.info("Clinic jobs started")


async def on_shutdown(app: Application) -> None:
    """Stop the workers and release the database."""
    await app.queue.stop()
    await close_engine(app.engine)
    logger.info("Clinic jobs stopped")


async def run() -> None:
    """Run until SIGINT or SIGTERM."""
    app = build_application()
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await on_startup(app)
    try:
        await stop.wait()
    finally:
        await on_shutdown(app)


def main() -> None:
    """Main function."""
    setup_logging()
    asyncio.run(run())


if __name__ == "__main__":
    main()
