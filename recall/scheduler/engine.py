"""JobScheduler — APScheduler tick loop driving cron-scheduled jobs."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from recall.config import settings
from recall.errors import JobError, NotFoundError, ScheduleError, ValidationError
from recall.scheduler.cron import CronExpression
from recall.scheduler.models import ScheduledJob

if TYPE_CHECKING:
    from recall.scheduler.models import BaseJob, JobResult

logger = logging.getLogger(__name__)

TICK_JOB_ID = "recall-scheduler-tick"


class JobScheduler:
    """Runs registered jobs whenever their cron schedule comes due.

    A single APScheduler interval job ticks every *tick_seconds*; each tick
    runs the due jobs one after another.

    Args:
        timezone: IANA timezone schedules are evaluated in (default from settings).
        tick_seconds: Tick period (default from settings).
    """

    def __init__(self, timezone: str | None = None, tick_seconds: int | None = None) -> None:
        self._timezone = timezone or settings.scheduler_timezone
        self._tz = ZoneInfo(self._timezone)
        self._tick_seconds = tick_seconds or settings.scheduler_tick_seconds
        self._jobs: dict[str, ScheduledJob] = {}
        self._scheduler: AsyncIOScheduler | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def _now(self) -> datetime:
        return datetime.now(self._tz)

    # -- Job management --------------------------------------------------------

    def add_job(self, job: BaseJob) -> ScheduledJob:
        """Register *job*, replacing any job with the same name."""
        if not getattr(job, "schedule", ""):
            msg = f"Job {job.name!r} has no schedule"
            raise ValidationError(msg)
        scheduled = ScheduledJob(job=job, cron=CronExpression(job.schedule))
        self._update_next_run(scheduled)
        if job.name in self._jobs:
            logger.info("Replacing job %s", job.name)
        self._jobs[job.name] = scheduled
        logger.info("Registered job %s (%s), next run %s", job.name, job.schedule, scheduled.next_run)
        return scheduled

    def remove_job(self, name: str) -> bool:
        removed = self._jobs.pop(name, None) is not None
        if removed:
            logger.info("Removed job %s", name)
        return removed

    def get_job(self, name: str) -> ScheduledJob | None:
        return self._jobs.get(name)

    def get_status(self) -> dict[str, Any]:
        """Whether the scheduler is ticking, plus per-job state."""
        return {
            "running": self.running,
            "jobs": [
                {
                    "name": s.job.name,
                    "description": s.job.description,
                    "schedule": s.job.schedule,
                    "last_run": s.last_run.isoformat() if s.last_run else None,
                    "next_run": s.next_run.isoformat() if s.next_run else None,
                    "is_running": s.is_running,
                }
                for s in self._jobs.values()
            ],
        }

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Start ticking. The first tick happens immediately."""
        if self._running:
            return
        self._scheduler = AsyncIOScheduler(timezone=self._timezone)
        self._scheduler.add_job(
            self._tick,
            trigger=IntervalTrigger(seconds=self._tick_seconds, timezone=self._timezone),
            id=TICK_JOB_ID,
            next_run_time=self._now(),
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        self._running = True
        logger.info(
            "Job scheduler started with %d job(s) (tick=%ds, tz=%s)",
            len(self._jobs),
            self._tick_seconds,
            self._timezone,
        )

    async def stop(self) -> None:
        if self._running and self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            self._running = False
            logger.info("Job scheduler stopped")

    async def run_job_now(self, name: str) -> bool:
        """Run a job outside its schedule. Returns False if it is already running.

        Raises ``NotFoundError`` for unknown job names.
        """
        scheduled = self._jobs.get(name)
        if scheduled is None:
            msg = f"Unknown job: {name}"
            raise NotFoundError(msg)
        if scheduled.is_running:
            logger.info("Job %s is already running", name)
            return False
        await self._run_job(scheduled)
        return True

    # -- Internal --------------------------------------------------------------

    async def _tick(self) -> None:
        now = self._now()
        for scheduled in list(self._jobs.values()):
            if scheduled.is_running or scheduled.next_run is None or scheduled.next_run > now:
                continue
            await self._run_job(scheduled)

    async def _run_job(self, scheduled: ScheduledJob) -> None:
        # Claimed before the first await so overlapping ticks skip this job.
        scheduled.is_running = True
        job = scheduled.job
        try:
            try:
                allowed = await job.can_run()
            except Exception:
                logger.exception("Job %s can_run() raised", job.name)
                allowed = False
            if not allowed:
                logger.info("Job %s skipped", job.name)
                return

            scheduled.last_run = self._now()
            logger.info("Running job %s", job.name)
            try:
                result = await job.execute()
            except Exception as exc:
                logger.exception("Job %s raised", job.name)
                await self._notify_error(job, exc)
            else:
                if result.success:
                    await self._notify_success(job, result)
                else:
                    await self._notify_error(job, JobError(result.error or "Job reported failure"))
        finally:
            scheduled.is_running = False
            self._update_next_run(scheduled)

    async def _notify_success(self, job: BaseJob, result: JobResult) -> None:
        try:
            await job.on_success(result)
        except Exception:
            logger.exception("Job %s on_success() raised", job.name)

    async def _notify_error(self, job: BaseJob, error: Exception) -> None:
        try:
            await job.on_error(error)
        except Exception:
            logger.exception("Job %s on_error() raised", job.name)

    def _update_next_run(self, scheduled: ScheduledJob) -> None:
        try:
            scheduled.next_run = scheduled.cron.get_next_run(self._now())
        except ScheduleError:
            logger.exception("Cannot compute next run for job %s", scheduled.job.name)
            scheduled.next_run = None
