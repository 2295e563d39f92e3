from .handlers import AppointmentJobs
from .models import Job, JobKind, JobOutcome, JobResult, JobState, QueueName
from .queue import JobQueue, JobQueueConfig
from .registrar import PAST_APPOINTMENTS_JOB, RecurringJobRegistrar, RecurringJobsConfig
from .triggers import REMINDER_OFFSET, AppointmentJobTriggers

__all__ = [
    "PAST_APPOINTMENTS_JOB",
    "REMINDER_OFFSET",
    "AppointmentJobTriggers",
    "AppointmentJobs",
    "Job",
    "JobKind",
    "JobOutcome",
    "JobQueue",
    "JobQueueConfig",
    "JobResult",
    "JobState",
    "QueueName",
    "RecurringJobRegistrar",
    "RecurringJobsConfig",
]
