from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
from uuid import uuid4


class JobKind(Enum):
    """Handlers a job can be executed by."""

    CREATED_EMAIL = "created_email"
    REMINDER = "reminder"
    STATUS_SWEEP = "status_sweep"


class QueueName(str, Enum):
    """Channels isolating workloads from each other."""

    DEFAULT = "default"
    NOTIFICATIONS = "notifications"
    MAINTENANCE = "maintenance"


class JobState(Enum):
    """Job lifecycle states."""

    PENDING = "pending"
    RUNNING = "running"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class JobOutcome(Enum):
    """What a handler reports back to the queue."""

    SUCCEEDED = "succeeded"
    RETRYABLE = "retryable"  # Transient failure, run again later
    TERMINAL = "terminal"  # Will never succeed, drop the job


@dataclass(frozen=True)
class JobResult:
    """Result of one handler execution."""

    outcome: JobOutcome
    detail: Optional[str] = None

    @classmethod
    def ok(cls, detail: Optional[str] = None) -> JobResult:
        return cls(JobOutcome.SUCCEEDED, detail)

    @classmethod
    def retry(cls, detail: str) -> JobResult:
        return cls(JobOutcome.RETRYABLE, detail)

    @classmethod
    def fail(cls, detail: str) -> JobResult:
        return cls(JobOutcome.TERMINAL, detail)

    @property
    def succeeded(self) -> bool:
        return self.outcome is JobOutcome.SUCCEEDED


@dataclass
class Job:
    """Unit of immediate or delayed work."""

    kind: JobKind
    queue: QueueName
    payload: Optional[str] = None
    not_before: Optional[datetime] = None
    retry_count: int = 0
    state: JobState = JobState.PENDING
    recurring_name: Optional[str] = None
    id: str = field(default_factory=lambda: uuid4().hex)

    def describe(self) -> str:
        """Short description for log lines."""
        target = f"({self.payload})" if self.payload is not None else "()"
        return f"{self.kind.value}{target} [{self.id}] on {self.queue.value}"


@dataclass
class RecurringJob:
    """Job definition re-enqueued on a fixed interval."""

    name: str
    kind: JobKind
    queue: QueueName
    interval: timedelta
    next_run: datetime
    payload: Optional[str] = None
