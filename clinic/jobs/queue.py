from __future__ import annotations

import asyncio
import contextlib
import heapq
import itertools
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Mapping, Optional

from loguru import logger

from clinic.jobs.models import (
    Job,
    JobKind,
    JobOutcome,
    JobResult,
    JobState,
    QueueName,
    RecurringJob,
)

Handler = Callable[[Optional[str]], Awaitable[JobResult]]


def _default_workers() -> dict[QueueName, int]:
    return {queue: 1 for queue in QueueName}


@dataclass
class JobQueueConfig:
    """Config for the job queue."""

    poll_interval_seconds: float = 5.0
    max_attempts: int = 3
    backoff_base_seconds: float = 30.0
    backoff_max_seconds: float = 600.0
    workers: dict[QueueName, int] = field(default_factory=_default_workers)

    def __post_init__(self) -> None:
        if self.poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be positive")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        for queue in QueueName:
            if self.workers.get(queue, 0) < 1:
                raise ValueError(f"Queue '{queue.value}' needs at least one worker")


class JobQueue:
    """In-process job queue with delayed, recurring and retried jobs.

    Every channel in ``QueueName`` has its own ready queue and worker pool,
    so a slow handler on one channel never holds up the others. Delayed jobs
    sit in a heap ordered by ``not_before`` until the poller moves them to
    their channel.

    ``enqueue`` and ``schedule`` may be called from other threads once the
    queue is started, the job is handed over to the loop thread. Recurring
    jobs are registered from the loop thread.
    """

    def __init__(
        self,
        handlers: Mapping[JobKind, Handler],
        config: JobQueueConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._handlers = dict(handlers)
        self._config = config or JobQueueConfig()
        self._clock = clock
        self._ready: dict[QueueName, asyncio.Queue[Job]] = {
            queue: asyncio.Queue() for queue in QueueName
        }
        self._delayed: list[tuple[datetime, int, Job]] = []
        self._sequence = itertools.count()
        self._recurring: dict[str, RecurringJob] = {}
        self._active_recurring: set[str] = set()
        self._wakeup = asyncio.Event()
        self._stopped = asyncio.Event()
        self._tasks: list[asyncio.Task[None]] = []
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def start(self) -> None:
        """Start the poller and the workers of every channel."""
        if self.is_running:
            return
        self._loop = asyncio.get_running_loop()
        self._stopped.clear()
        self._tasks = [asyncio.create_task(self._run_poller(), name="jobs-poller")]
        for queue in QueueName:
            for index in range(self._config.workers[queue]):
                self._tasks.append(
                    asyncio.create_task(
                        self._run_worker(queue),
                        name=f"jobs-{queue.value}-{index}",
                    ),
                )
        logger.info(
            "JobQueue started with workers "
            + ", ".join(f"{q.value}={n}" for q, n in self._config.workers.items()),
        )

    async def stop(self) -> None:
        """Stop the poller and the workers, pending jobs are kept."""
        self._stopped.set()
        self._wakeup.set()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("JobQueue stopped")

    async def join(self) -> None:
        """Wait until every job that is ready to run has been processed."""
        await asyncio.gather(*(queue.join() for queue in self._ready.values()))

    def enqueue(
        self,
        kind: JobKind,
        payload: Optional[str] = None,
        queue: QueueName | str = QueueName.DEFAULT,
    ) -> str:
        """
        Queue a job for immediate execution.

        Args:
            kind: Handler to run.
            payload: Handler argument, usually an appointment id.
            queue: Channel to run the job on.

        Returns:
            The job id.

        Raises:
            ValueError: If there is no handler for ``kind`` or ``queue`` is unknown.
        """
        job = self._new_job(kind, payload, queue)
        self._push_ready(job)
        logger.info(f"Job {job.describe()} enqueued")
        return job.id

    def schedule(
        self,
        kind: JobKind,
        payload: Optional[str],
        queue: QueueName | str,
        not_before: datetime,
    ) -> str:
        """
        Queue a job that becomes eligible once ``not_before`` is reached.

        A ``not_before`` that already passed runs the job immediately.

        Returns:
            The job id.

        Raises:
            ValueError: If there is no handler for ``kind`` or ``queue`` is unknown.
        """
        job = self._new_job(kind, payload, queue)
        if not_before <= self._clock():
            logger.warning(
                f"Job {job.describe()} scheduled in the past ({not_before}), "
                f"running it immediately",
            )
            self._push_ready(job)
            return job.id

        job.not_before = not_before
        self._push_delayed(job)
        logger.info(f"Job {job.describe()} scheduled at {not_before}")
        return job.id

    def add_or_update_recurring(
        self,
        name: str,
        kind: JobKind,
        queue: QueueName | str,
        interval: timedelta,
        payload: Optional[str] = None,
    ) -> RecurringJob:
        """
        Register a job re-enqueued every ``interval``, keyed by ``name``.

        Registering an existing name with the same definition keeps its
        schedule; a changed definition replaces it. There is never more than
        one schedule per name.

        Raises:
            ValueError: If the interval is not positive, there is no handler
                for ``kind`` or ``queue`` is unknown.
        """
        if interval <= timedelta(0):
            raise ValueError(f"Recurring job '{name}' needs a positive interval")
        queue = self._validate(kind, queue)

        existing = self._recurring.get(name)
        if (
            existing is not None
            and existing.kind == kind
            and existing.queue == queue
            and existing.interval == interval
            and existing.payload == payload
        ):
            logger.info(f"Recurring job '{name}' already registered")
            return replace(existing)

        recurring = RecurringJob(
            name=name,
            kind=kind,
            queue=queue,
            interval=interval,
            next_run=self._clock() + interval,
            payload=payload,
        )
        self._recurring[name] = recurring
        self._wakeup.set()
        logger.info(
            f"Recurring job '{name}' scheduled every {interval}, "
            f"next run at {recurring.next_run}",
        )
        return replace(recurring)

    def remove_recurring(self, name: str) -> bool:
        """Forget a recurring job, False when it was not registered."""
        removed = self._recurring.pop(name, None) is not None
        if removed:
            logger.info(f"Recurring job '{name}' removed")
        return removed

    def recurring_jobs(self) -> list[RecurringJob]:
        """Snapshot of the registered recurring jobs."""
        return [replace(recurring) for recurring in self._recurring.values()]

    def delayed_jobs(self) -> list[Job]:
        """Snapshot of the delayed jobs, earliest first."""
        return [replace(job) for _, _, job in sorted(self._delayed)]

    def pending_count(self, queue: QueueName | None = None) -> int:
        """Number of ready and delayed jobs, optionally for one channel."""
        queues = [queue] if queue else list(QueueName)
        ready = sum(self._ready[q].qsize() for q in queues)
        delayed = sum(1 for _, _, job in self._delayed if job.queue in queues)
        return ready + delayed

    def backoff(self, retry_count: int) -> timedelta:
        """Delay before the given retry, doubling up to the configured cap."""
        seconds = self._config.backoff_base_seconds * 2 ** max(retry_count - 1, 0)
        return timedelta(seconds=min(seconds, self._config.backoff_max_seconds))

    def _validate(self, kind: JobKind, queue: QueueName | str) -> QueueName:
        if kind not in self._handlers:
            raise ValueError(f"No handler registered for {kind.value}")
        return QueueName(queue)

    def _new_job(
        self,
        kind: JobKind,
        payload: Optional[str],
        queue: QueueName | str,
    ) -> Job:
        return Job(kind=kind, queue=self._validate(kind, queue), payload=payload)

    def _on_loop(self, callback: Callable[[Job], None], job: Job) -> None:
        # asyncio primitives and the heap are only touched from the loop thread
        loop = self._loop
        if loop is None or loop.is_closed():
            callback(job)
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            callback(job)
        else:
            loop.call_soon_threadsafe(callback, job)

    def _push_ready(self, job: Job) -> None:
        self._on_loop(self._put_ready, job)

    def _put_ready(self, job: Job) -> None:
        job.state = JobState.PENDING
        self._ready[job.queue].put_nowait(job)

    def _push_delayed(self, job: Job) -> None:
        self._on_loop(self._put_delayed, job)

    def _put_delayed(self, job: Job) -> None:
        not_before = job.not_before or self._clock()
        heapq.heappush(self._delayed, (not_before, next(self._sequence), job))
        self._wakeup.set()

    async def _run_poller(self) -> None:
        try:
            while not self._stopped.is_set():
                self._wakeup.clear()
                self._promote_due()
                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(
                        self._wakeup.wait(),
                        timeout=self._seconds_until_next(),
                    )
        except Exception as e:
            logger.exception(f"Job poller crashed: {e}")

    def _seconds_until_next(self) -> float:
        due = [self._delayed[0][0]] if self._delayed else []
        due += [recurring.next_run for recurring in self._recurring.values()]
        timeout = self._config.poll_interval_seconds
        if due:
            until = (min(due) - self._clock()).total_seconds()
            timeout = min(timeout, max(until, 0.0))
        return timeout

    def _promote_due(self) -> None:
        now = self._clock()
        while self._delayed and self._delayed[0][0] <= now:
            _, _, job = heapq.heappop(self._delayed)
            self._push_ready(job)
            logger.debug(f"Job {job.describe()} is due")

        for recurring in self._recurring.values():
            if recurring.next_run > now:
                continue
            while recurring.next_run <= now:
                recurring.next_run += recurring.interval
            if recurring.name in self._active_recurring:
                logger.warning(
                    f"Recurring job '{recurring.name}' is still pending, "
                    f"skipping this run",
                )
                continue
            self._active_recurring.add(recurring.name)
            job = Job(
                kind=recurring.kind,
                queue=recurring.queue,
                payload=recurring.payload,
                recurring_name=recurring.name,
            )
            self._push_ready(job)
            logger.info(f"Recurring job '{recurring.name}' enqueued as {job.id}")

    async def _run_worker(self, queue: QueueName) -> None:
        ready = self._ready[queue]
        while True:
            job = await ready.get()
            try:
                await self._execute(job)
            finally:
                ready.task_done()

    async def _execute(self, job: Job) -> None:
        handler = self._handlers[job.kind]
        job.state = JobState.RUNNING
        logger.info(f"Running job {job.describe()}, attempt {job.retry_count + 1}")
        try:
            result = await handler(job.payload)
        except asyncio.CancelledError:
            logger.warning(f"Job {job.describe()} cancelled while running")
            self._release(job)
            raise
        except Exception as e:
            logger.exception(f"Job {job.describe()} raised: {e}")
            result = JobResult.retry(f"{type(e).__name__}: {e}")
        self._finish(job, result)

    def _finish(self, job: Job, result: JobResult) -> None:
        if result.outcome is JobOutcome.SUCCEEDED:
            job.state = JobState.SUCCEEDED
            logger.info(f"Job {job.describe()} succeeded")
        elif result.outcome is JobOutcome.TERMINAL:
            job.state = JobState.FAILED
            logger.error(f"Job {job.describe()} failed: {result.detail}")
        else:
            job.retry_count += 1
            if job.retry_count >= self._config.max_attempts:
                job.state = JobState.FAILED
                logger.error(
                    f"Job {job.describe()} dropped after {job.retry_count} "
                    f"attempts: {result.detail}",
                )
            else:
                self._retry(job, result)
                return

        self._release(job)

    def _release(self, job: Job) -> None:
        if job.recurring_name:
            self._active_recurring.discard(job.recurring_name)

    def _retry(self, job: Job, result: JobResult) -> None:
        delay = self.backoff(job.retry_count)
        job.state = JobState.RETRYING
        logger.warning(
            f"Job {job.describe()} will be retried in {delay}: {result.detail}",
        )
        if delay <= timedelta(0):
            self._push_ready(job)
            return
        job.not_before = self._clock() + delay
        self._push_delayed(job)
