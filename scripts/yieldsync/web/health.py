"""
Health check endpoint for monitoring service status.
"""

from datetime import datetime

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request):
    """Return service health status as JSON."""
    started_at = getattr(request.app.state, "started_at", None)
    services = getattr(request.app.state, "services", None)

    uptime_seconds = None
    if started_at:
        uptime_seconds = (datetime.now() - started_at).total_seconds()

    scheduler = {"running": False, "jobs": []}
    sweep = {"running": False, "last_summary": None}
    if services is not None:
        scheduler = {
            "running": services.scheduler.running,
            "jobs": services.scheduler.active_jobs(),
        }
        last = services.orchestrator.last_summary
        sweep = {
            "running": services.orchestrator.is_running,
            "last_summary": last.to_dict() if last else None,
        }

    return {
        "status": "healthy",
        "started_at": str(started_at) if started_at else None,
        "uptime_seconds": uptime_seconds,
        "scheduler": scheduler,
        "sweep": sweep,
    }
