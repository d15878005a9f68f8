"""
Scheduled job definitions for pool data synchronization.
"""

import logging
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

POOL_DATA_SYNC = "pool_data_sync"


def make_pool_data_sync_job(orchestrator) -> Callable:
    """Build the recurring full-sweep job for ``orchestrator``."""

    async def pool_data_sync_job():
        logger.info("Pool data sync job started")
        summary = await orchestrator.sweep_all()
        if summary is None:
            logger.info("Pool data sync skipped: a sweep is already running")
        else:
            logger.info("Pool data sync complete: %s", summary)

    return pool_data_sync_job


def job_tasks(orchestrator) -> Dict[str, Callable]:
    """Map each known job name to its task."""
    return {POOL_DATA_SYNC: make_pool_data_sync_job(orchestrator)}


def register_jobs(job_scheduler, store, orchestrator, bootstrap_delay: Optional[float] = 10) -> int:
    """Schedule every known job from its stored JobConfig.

    Args:
        job_scheduler: JobScheduler to install jobs on.
        store: JobConfig store.
        orchestrator: SweepOrchestrator the jobs drive.
        bootstrap_delay: Seconds before the one-shot warm-up sweep; None disables it.

    Returns:
        Number of enabled recurring jobs scheduled.
    """
    scheduled = 0
    tasks = job_tasks(orchestrator)
    for name, task in tasks.items():
        job_config = store.get_job_config(name)
        if job_config is None:
            logger.warning("No stored configuration for job %s, not scheduled", name)
            continue
        if job_scheduler.schedule(job_config, task):
            scheduled += 1

    if bootstrap_delay is not None:
        job_scheduler.schedule_bootstrap(tasks[POOL_DATA_SYNC], delay_seconds=bootstrap_delay)

    return scheduled
