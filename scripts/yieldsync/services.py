"""Explicit construction of the engine's services.

Everything the web app and CLI need is built here once at startup and passed
down, so separate instances (e.g. in tests) never share state.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from .config import Config, get_config
from .database import Database
from .gateway import DatabaseGateway, StorageGateway
from .http import make_client
from .orchestrator import SweepOrchestrator
from .scheduler.setup import JobScheduler, create_job_scheduler
from .sources.registry import Registry, build_registry

logger = logging.getLogger(__name__)


@dataclass
class SyncServices:
    config: Config
    db: Database
    gateway: StorageGateway
    registry: Registry
    orchestrator: SweepOrchestrator
    scheduler: JobScheduler
    http_client: Optional[httpx.AsyncClient] = None

    def batch_caches(self) -> list:
        """BatchCaches held by registered adapters."""
        return [adapter.cache for adapter in self.registry.adapters() if hasattr(adapter, "cache")]

    async def aclose(self) -> None:
        await self.scheduler.shutdown()
        await self.registry.aclose()
        if self.http_client is not None:
            await self.http_client.aclose()


def build_services(
    config: Optional[Config] = None,
    db: Optional[Database] = None,
    gateway: Optional[StorageGateway] = None,
    registry: Optional[Registry] = None,
) -> SyncServices:
    """Wire up database, gateway, adapters, orchestrator and scheduler.

    Any component passed in is used as-is instead of being built from config.
    """
    config = config or get_config()
    db = db or Database(config.database_path)
    db.seed_job_configs(config.jobs)
    gateway = gateway or DatabaseGateway(db)

    http_client = None
    if registry is None:
        http_client = make_client(
            timeout=config.get("http.timeout", 30.0),
            user_agent=config.get("http.user_agent", "yieldsync/1.0"),
        )
        registry = build_registry(config.sources, client=http_client)

    orchestrator = SweepOrchestrator(registry, gateway)
    scheduler = create_job_scheduler(db, config)

    return SyncServices(
        config=config,
        db=db,
        gateway=gateway,
        registry=registry,
        orchestrator=orchestrator,
        scheduler=scheduler,
        http_client=http_client,
    )
