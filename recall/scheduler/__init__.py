"""Cron-scheduled background jobs."""

from recall.scheduler.cron import CronExpression
from recall.scheduler.engine import JobScheduler
from recall.scheduler.models import BaseJob, JobResult, ScheduledJob

__all__ = [
    "BaseJob",
    "CronExpression",
    "JobResult",
    "JobScheduler",
    "ScheduledJob",
]
