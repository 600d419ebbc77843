"""
Background Job Registry

Named recurring tasks on top of APScheduler's AsyncIOScheduler.

A `JobRegistry` is built once during application startup, stored on
`app.state.job_registry` and injected wherever jobs are registered or
inspected. Tests build their own registry per test.

Behaviour:
- Schedules are five-field cron expressions validated at registration
- Registering an existing name stops and replaces the previous job
- Every run is wrapped: start/duration/failure are logged and a
  `JobRunResult` is appended to a bounded history
- A failing run never propagates to the scheduler; the job stays armed
- Only one instance of a given job runs on schedule at a time

Usage:
    registry = JobRegistry()
    registry.register("cleanup-temp", "0 2 * * *", cleanup_temp_files)
    registry.start()
    ...
    registry.shutdown()
"""

import asyncio
import inspect
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

from apscheduler.events import EVENT_JOB_MAX_INSTANCES, EVENT_JOB_MISSED, JobEvent
from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.core.config import settings
from app.core.errors import NotFoundError

logger = logging.getLogger(__name__)

JobTask = Callable[[], Awaitable[Any] | Any]


class SchedulerConfig:
    """Defaults applied to every registered job."""

    JOB_COALESCE = True  # Combine missed executions into one
    JOB_MAX_INSTANCES = 1  # One scheduled instance per job at a time
    JOB_MISFIRE_GRACE_TIME = 60 * 5

    JOB_DEFAULTS = {
        "coalesce": JOB_COALESCE,
        "max_instances": JOB_MAX_INSTANCES,
        "misfire_grace_time": JOB_MISFIRE_GRACE_TIME,
    }


class JobConfigurationError(ValueError):
    """Raised when a job's schedule or timezone is invalid."""


class JobNotFoundError(NotFoundError):
    """Raised when an operation names a job that is not registered."""

    def __init__(self, name: str):
        super().__init__(f"Job '{name}' is not registered.", error_code="JOB_NOT_FOUND")
        self.job_name = name


@dataclass
class JobRunResult:
    """Outcome of one wrapped execution."""

    job_name: str
    trigger: str
    started_at: datetime
    finished_at: datetime
    duration_ms: float
    success: bool
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class JobInfo:
    name: str
    schedule: str
    timezone: str
    registered_at: datetime
    is_running: bool
    is_executing: bool
    next_run_time: datetime | None = None


@dataclass
class _JobEntry:
    name: str
    schedule: str
    timezone: str
    task: JobTask
    trigger: CronTrigger
    registered_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    active: bool = True
    deferred: bool = False  # registered with scheduled=False, armed by start()


def parse_cron(schedule: str, timezone: str) -> CronTrigger:
    """
    Build a CronTrigger from a five-field expression.

    Raises:
        JobConfigurationError: If the expression or timezone is invalid
    """
    try:
        return CronTrigger.from_crontab(schedule, timezone=timezone)
    except (ValueError, LookupError, TypeError) as e:
        raise JobConfigurationError(
            f"Invalid schedule '{schedule}' (timezone {timezone}): {e}"
        ) from e


class JobRegistry:
    """Process-wide table of named cron jobs."""

    def __init__(
        self,
        timezone: str | None = None,
        history_size: int | None = None,
    ):
        self.timezone = timezone or settings.scheduler_timezone
        self._jobs: dict[str, _JobEntry] = {}
        self._executing: set[str] = set()
        self._history: deque[JobRunResult] = deque(
            maxlen=history_size or settings.job_history_size
        )
        self._scheduler = AsyncIOScheduler(
            timezone=self.timezone,
            executors={"default": AsyncIOExecutor()},
            job_defaults=SchedulerConfig.JOB_DEFAULTS,
        )
        self._scheduler.add_listener(
            self._on_skipped_run, EVENT_JOB_MAX_INSTANCES | EVENT_JOB_MISSED
        )

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def _on_skipped_run(self, event: JobEvent) -> None:
        logger.warning(f"Scheduled run of job '{event.job_id}' skipped (event {event.code})")

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        name: str,
        schedule: str,
        task: JobTask,
        *,
        timezone: str | None = None,
        scheduled: bool = True,
    ) -> None:
        """
        Register a recurring job.

        Args:
            name: Unique job name
            schedule: Five-field cron expression
            task: Callable run on each tick; may be sync or async
            timezone: IANA timezone for the schedule (registry default if omitted)
            scheduled: If False the job is registered paused until `start()`
                or `start_job(name)` arms it

        Raises:
            JobConfigurationError: If the schedule is invalid
        """
        tz = timezone or self.timezone
        trigger = parse_cron(schedule, tz)

        if name in self._jobs:
            logger.warning(f"Job '{name}' already registered, replacing it")
            self._remove_scheduled(name)
            del self._jobs[name]

        entry = _JobEntry(
            name=name,
            schedule=schedule,
            timezone=tz,
            task=task,
            trigger=trigger,
            active=scheduled,
            deferred=not scheduled,
        )

        job_kwargs: dict[str, Any] = {}
        if not scheduled:
            job_kwargs["next_run_time"] = None

        self._scheduler.add_job(
            self._execute,
            trigger=trigger,
            args=[name],
            id=name,
            name=name,
            replace_existing=True,
            **job_kwargs,
        )
        self._jobs[name] = entry
        logger.info(f"Registered job: {name} ({schedule}, {tz})")

    def unregister(self, name: str) -> bool:
        if name not in self._jobs:
            return False
        self._remove_scheduled(name)
        del self._jobs[name]
        logger.info(f"Unregistered job: {name}")
        return True

    def _remove_scheduled(self, name: str) -> None:
        try:
            self._scheduler.remove_job(name)
        except JobLookupError:
            logger.debug(f"Job '{name}' had no scheduled instance to remove")

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def _execute(self, name: str, trigger: str = "scheduled") -> JobRunResult:
        """Run a job's task, recording the outcome instead of raising."""
        entry = self._jobs.get(name)
        if entry is None:
            raise JobNotFoundError(name)

        started_at = datetime.now(UTC)
        start = time.perf_counter()
        self._executing.add(name)
        logger.info(f"Job '{name}' started ({trigger})")

        error: str | None = None
        try:
            if inspect.iscoroutinefunction(entry.task):
                await entry.task()
            else:
                outcome = await asyncio.to_thread(entry.task)
                if inspect.isawaitable(outcome):
                    await outcome
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            logger.exception(f"Job '{name}' failed after {_elapsed_ms(start):.0f}ms: {e}")
        finally:
            self._executing.discard(name)

        duration_ms = _elapsed_ms(start)
        if error is None:
            logger.info(f"Job '{name}' finished in {duration_ms:.0f}ms")

        result = JobRunResult(
            job_name=name,
            trigger=trigger,
            started_at=started_at,
            finished_at=datetime.now(UTC),
            duration_ms=duration_ms,
            success=error is None,
            error=error,
        )
        self._history.append(result)
        return result

    async def run_job(self, name: str) -> JobRunResult:
        """
        Run a job immediately, outside its schedule, and wait for it.

        Raises:
            JobNotFoundError: If the job is not registered
        """
        if name not in self._jobs:
            raise JobNotFoundError(name)
        logger.info(f"Manually triggering job: {name}")
        return await self._execute(name, trigger="manual")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Arm jobs registered with `scheduled=False` and start the scheduler.

        Jobs paused through `stop_job` stay paused.
        """
        if self.running:
            logger.warning("Scheduler already running")
            return

        for name, entry in self._jobs.items():
            if entry.deferred:
                self._scheduler.resume_job(name)
                entry.active = True
                entry.deferred = False

        self._scheduler.start()
        logger.info(f"Job scheduler started with {len(self._jobs)} job(s)")
        self.log_registered_jobs()

    def shutdown(self, wait: bool = True) -> None:
        if not self.running:
            logger.debug("Scheduler not running, nothing to stop")
            return
        self._scheduler.shutdown(wait=wait)
        logger.info("Job scheduler stopped")

    def stop_job(self, name: str) -> bool:
        """Pause a job. Returns False if the name is unknown."""
        entry = self._jobs.get(name)
        if entry is None:
            logger.warning(f"Job not found for stopping: {name}")
            return False
        self._scheduler.pause_job(name)
        entry.active = False
        entry.deferred = False
        logger.info(f"Stopped job: {name}")
        return True

    def start_job(self, name: str) -> bool:
        """Resume a paused job. Returns False if the name is unknown."""
        entry = self._jobs.get(name)
        if entry is None:
            logger.warning(f"Job not found for starting: {name}")
            return False
        self._scheduler.resume_job(name)
        entry.active = True
        entry.deferred = False
        logger.info(f"Started job: {name}")
        return True

    def restart_job(self, name: str) -> bool:
        if not self.stop_job(name):
            return False
        return self.start_job(name)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_job(self, name: str) -> JobInfo | None:
        entry = self._jobs.get(name)
        if entry is None:
            return None
        return self._info(entry)

    def list_jobs(self) -> list[JobInfo]:
        """All registered jobs in registration order."""
        return [self._info(entry) for entry in self._jobs.values()]

    def _info(self, entry: _JobEntry) -> JobInfo:
        next_run_time = None
        if self.running:
            scheduled = self._scheduler.get_job(entry.name)
            next_run_time = scheduled.next_run_time if scheduled else None
        return JobInfo(
            name=entry.name,
            schedule=entry.schedule,
            timezone=entry.timezone,
            registered_at=entry.registered_at,
            is_running=entry.active,
            is_executing=entry.name in self._executing,
            next_run_time=next_run_time,
        )

    def history(self, name: str | None = None) -> list[JobRunResult]:
        """Recent run results, oldest first, optionally for one job."""
        if name is None:
            return list(self._history)
        return [result for result in self._history if result.job_name == name]

    def __contains__(self, name: object) -> bool:
        return name in self._jobs

    def __len__(self) -> int:
        return len(self._jobs)

    def log_registered_jobs(self) -> None:
        if not self._jobs:
            logger.info("No jobs registered")
            return
        for info in self.list_jobs():
            state = "active" if info.is_running else "stopped"
            logger.info(f"  - {info.name}: {info.schedule} ({info.timezone}) [{state}]")


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


__all__ = [
    "JobRegistry",
    "JobRunResult",
    "JobInfo",
    "JobConfigurationError",
    "JobNotFoundError",
    "SchedulerConfig",
    "parse_cron",
]
