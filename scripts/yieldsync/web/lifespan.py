"""
FastAPI lifespan context manager.

Builds the engine services (unless the app already carries them), starts the
job scheduler alongside the web server and tears both down on shutdown.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI

from yieldsync.services import SyncServices, build_services

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup/shutdown of the engine services and scheduler."""
    app.state.started_at = datetime.now()

    services = getattr(app.state, "services", None)
    if services is None:
        services = build_services()
        app.state.services = services

    scheduler_started = _start_scheduler(services)
    logger.info(
        "yieldsync started: sources=%s, scheduler=%s",
        ", ".join(services.orchestrator.list_sources()) or "none",
        scheduler_started,
    )

    yield

    try:
        await services.aclose()
    except Exception:
        logger.exception("Error during service shutdown")

    logger.info("yieldsync shutdown complete")


def _start_scheduler(services: SyncServices) -> bool:
    """Schedule the configured jobs and start the scheduler if enabled."""
    config = services.config
    if not config.get("scheduler.enabled", True):
        logger.info("Scheduler disabled in config")
        return False

    try:
        from yieldsync.scheduler.jobs import register_jobs

        register_jobs(
            services.scheduler,
            services.db,
            services.orchestrator,
            bootstrap_delay=config.get("scheduler.bootstrap_delay_seconds", 10),
        )
        services.scheduler.start()
        return True
    except Exception:
        logger.exception("Failed to start scheduler")
        return False
