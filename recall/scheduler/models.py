"""Background job contracts and scheduler bookkeeping."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from datetime import datetime

    from recall.scheduler.cron import CronExpression

logger = logging.getLogger(__name__)


@dataclass
class JobResult:
    """Outcome of one ``execute()`` call."""

    success: bool
    message: str | None = None
    data: dict[str, Any] | None = None
    error: str | None = None


class BaseJob(ABC):
    """A named unit of background work bound to a cron schedule.

    Subclasses set ``name``, ``description`` and ``schedule`` and implement
    ``execute()``. ``can_run()`` lets a job opt out of a tick, for example
    when a dependency is not configured.
    """

    name: str
    description: str = ""
    schedule: str = ""

    @abstractmethod
    async def execute(self) -> JobResult:
        """Do the work. May raise; the scheduler routes errors to ``on_error``."""

    async def can_run(self) -> bool:
        return True

    async def on_success(self, result: JobResult) -> None:
        logger.info("Job %s completed: %s", self.name, result.message or "ok")

    async def on_error(self, error: Exception) -> None:
        logger.error("Job %s failed: %s", self.name, error)

    # -- Result helpers --------------------------------------------------------

    def success(self, message: str | None = None, data: dict[str, Any] | None = None) -> JobResult:
        return JobResult(success=True, message=message, data=data)

    def failure(self, error: str, data: dict[str, Any] | None = None) -> JobResult:
        return JobResult(success=False, error=error, data=data)


@dataclass
class ScheduledJob:
    """Scheduler-side state for a registered job."""

    job: BaseJob
    cron: CronExpression
    last_run: datetime | None = None
    next_run: datetime | None = None
    is_running: bool = field(default=False)
