"""
Job scheduler - named recurring jobs that can be enabled, disabled and
re-timed while the process runs.

APScheduler does the timing; this module owns the mapping from job name to
task and JobConfig so that an administrative change only needs
``reconfigure(name)``.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from yieldsync.models import JobConfig
from yieldsync.scheduler.error_handler import make_job_listener

logger = logging.getLogger(__name__)

BOOTSTRAP_JOB_ID = "bootstrap_sweep"


class JobScheduler:
    """Owns named recurring jobs on top of an APScheduler scheduler.

    Args:
        store: JobConfig store with ``get_job_config(name)`` and ``record_job_run(...)``.
        scheduler: APScheduler instance; an AsyncIOScheduler is created if omitted.
        timezone: Timezone for the default scheduler.
        misfire_grace_time: Seconds a late run may still start.
    """

    def __init__(
        self,
        store,
        scheduler: Optional[BaseScheduler] = None,
        timezone: str = "UTC",
        misfire_grace_time: Optional[int] = 60,
    ) -> None:
        self._store = store
        self._scheduler = scheduler if scheduler is not None else AsyncIOScheduler(timezone=timezone)
        self._tasks: Dict[str, Callable] = {}
        self.misfire_grace_time = misfire_grace_time
        self._scheduler.add_listener(make_job_listener(store), EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

    @property
    def scheduler(self) -> BaseScheduler:
        return self._scheduler

    @property
    def running(self) -> bool:
        return self._scheduler.running

    @property
    def job_names(self) -> List[str]:
        return list(self._tasks)

    def schedule(self, job_config: JobConfig, task: Callable) -> bool:
        """Install ``task`` as a recurring job per ``job_config``.

        Any job already registered under the same name is replaced. A
        disabled config leaves no job behind.

        Returns:
            True if a job is now scheduled.
        """
        name = job_config.name
        self._tasks[name] = task
        self._remove(name)

        if not job_config.enabled:
            logger.info("Job %s is disabled, not scheduled", name)
            return False

        self._scheduler.add_job(
            task,
            IntervalTrigger(minutes=job_config.interval_minutes),
            id=name,
            name=job_config.display_name or name,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=self.misfire_grace_time,
            replace_existing=True,
        )
        logger.info("Job %s scheduled every %d minutes", name, job_config.interval_minutes)
        return True

    def reconfigure(self, name: str) -> JobConfig:
        """Re-read the stored JobConfig for ``name`` and reinstall its job.

        The swap happens without yielding to the event loop, so no tick can
        observe both the old and new job, or neither.

        Raises:
            KeyError: If the job was never scheduled or has no stored config.
        """
        task = self._tasks.get(name)
        if task is None:
            raise KeyError(f"Unknown job: {name}")

        job_config = self._store.get_job_config(name)
        if job_config is None:
            raise KeyError(f"No stored configuration for job: {name}")

        self.schedule(job_config, task)
        logger.info("Job %s reconfigured (interval=%dmin, enabled=%s)", name, job_config.interval_minutes, job_config.enabled)
        return job_config

    def schedule_bootstrap(self, task: Callable, delay_seconds: float = 10) -> None:
        """Run ``task`` once, ``delay_seconds`` from now, to warm up before the first tick."""
        run_date = datetime.now(timezone.utc) + timedelta(seconds=delay_seconds)
        self._scheduler.add_job(
            task,
            DateTrigger(run_date=run_date),
            id=BOOTSTRAP_JOB_ID,
            name="Initial pool data sweep",
            misfire_grace_time=None,
            replace_existing=True,
        )
        logger.info("Initial sweep scheduled in %ss", delay_seconds)

    def stop_all(self) -> int:
        """Remove every managed job, including a pending bootstrap run.

        Returns:
            Number of jobs removed.
        """
        removed = 0
        for name in list(self._tasks) + [BOOTSTRAP_JOB_ID]:
            if self._remove(name):
                removed += 1
                logger.info("Stopped job %s", name)
        logger.info("All scheduled jobs stopped (%d removed)", removed)
        return removed

    def job_count(self, name: str) -> int:
        return sum(1 for job in self._scheduler.get_jobs() if job.id == name)

    def active_jobs(self) -> List[Dict[str, Any]]:
        jobs = []
        for job in self._scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append(
                {
                    "id": job.id,
                    "name": job.name,
                    "next_run": str(next_run) if next_run else None,
                }
            )
        return jobs

    def start(self, paused: bool = False) -> None:
        self._scheduler.start(paused=paused)
        logger.info("Scheduler started with %d jobs", len(self._scheduler.get_jobs()))

    async def shutdown(self) -> None:
        """Stop the scheduler; AsyncIOScheduler finishes stopping on the next loop tick."""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            await asyncio.sleep(0)
            logger.info("Scheduler stopped")

    def _remove(self, name: str) -> bool:
        if self._scheduler.get_job(name) is None:
            return False
        self._scheduler.remove_job(name)
        return True


def create_job_scheduler(store, config) -> JobScheduler:
    """Create a JobScheduler using the ``scheduler`` config section."""
    return JobScheduler(
        store,
        timezone=config.get("scheduler.timezone", "UTC"),
        misfire_grace_time=config.get("scheduler.misfire_grace_time", 60),
    )
