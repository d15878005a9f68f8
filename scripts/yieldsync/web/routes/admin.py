"""
Administrative endpoints: job configuration and batch cache control.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from yieldsync.database import Database
from yieldsync.scheduler.setup import JobScheduler
from yieldsync.services import SyncServices
from yieldsync.web.dependencies import get_db, get_job_scheduler, get_services

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])


class JobConfigUpdate(BaseModel):
    interval_minutes: Optional[int] = None
    enabled: Optional[bool] = None


def _job_view(job, job_scheduler: JobScheduler) -> dict:
    next_runs = {j["id"]: j["next_run"] for j in job_scheduler.active_jobs()}
    data = job.to_dict()
    data["scheduled"] = job_scheduler.job_count(job.name) > 0
    data["next_run"] = next_runs.get(job.name)
    data["scheduler_running"] = job_scheduler.running
    return data


@router.get("/jobs")
async def list_jobs(
    db: Database = Depends(get_db),
    job_scheduler: JobScheduler = Depends(get_job_scheduler),
):
    jobs = [_job_view(job, job_scheduler) for job in db.list_job_configs()]
    return {"jobs": jobs, "count": len(jobs)}


@router.patch("/jobs/{name}")
async def update_job(
    name: str,
    update: JobConfigUpdate,
    services: SyncServices = Depends(get_services),
):
    """Change a job's interval or enabled flag and reschedule it immediately."""
    db, job_scheduler = services.db, services.scheduler
    if update.interval_minutes is not None:
        is_valid, error = services.config.validate_interval(update.interval_minutes)
        if not is_valid:
            return JSONResponse(status_code=422, content={"error": "Invalid interval", "message": error})

    job = db.update_job_config(name, interval_minutes=update.interval_minutes, enabled=update.enabled)
    if job is None:
        return JSONResponse(
            status_code=404,
            content={"error": "Job not found", "message": f"No job named {name}"},
        )

    # Jobs are only known to the scheduler once it has been started
    if name in job_scheduler.job_names:
        job = job_scheduler.reconfigure(name)

    return _job_view(job, job_scheduler)


@router.get("/cache")
async def cache_stats(services: SyncServices = Depends(get_services)):
    return {"caches": [cache.stats() for cache in services.batch_caches()]}


@router.post("/cache/clear")
async def clear_cache(services: SyncServices = Depends(get_services)):
    cleared = sum(cache.clear() for cache in services.batch_caches())
    logger.info("Cleared %d cached partitions", cleared)
    return {"message": "Batch caches cleared", "cleared": cleared}


@router.get("/stats")
async def pool_stats(services: SyncServices = Depends(get_services)):
    """Pool counts plus the most recent sweep summary."""
    last = services.orchestrator.last_summary
    return {
        "pools": services.db.get_statistics(),
        "last_sweep": last.to_dict() if last else None,
    }
