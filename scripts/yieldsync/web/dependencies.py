"""
Dependency injection for web routes.
"""

from fastapi import Depends, Request

from yieldsync.database import Database
from yieldsync.orchestrator import SweepOrchestrator
from yieldsync.scheduler.setup import JobScheduler
from yieldsync.services import SyncServices


def get_services(request: Request) -> SyncServices:
    """Services attached to the app at startup."""
    return request.app.state.services


def get_orchestrator(services: SyncServices = Depends(get_services)) -> SweepOrchestrator:
    return services.orchestrator


def get_job_scheduler(services: SyncServices = Depends(get_services)) -> JobScheduler:
    return services.scheduler


def get_db(services: SyncServices = Depends(get_services)) -> Database:
    return services.db
