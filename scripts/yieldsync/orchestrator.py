"""
Sweep orchestration - routes pools to adapters, persists results, tallies outcomes.

Workflow (per sweep)
--------------------
1. Refuse to start if a sweep is already running (no-op, not queued).
2. Load the active pools from the storage gateway.
3. Fan out one adapter fetch per pool and wait for every outcome.
4. Persist each successful record, count successes, failures and skips.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional, Tuple

from .errors import EntityNotFound, EnumerationFailure, RoutingMiss
from .gateway import StorageGateway
from .models import Entity, ScrapedRecord, SweepSummary
from .sources.base import SourceAdapter
from .sources.registry import Registry

logger = logging.getLogger(__name__)

SUCCESS = "success"
FAILED = "failed"
SKIPPED = "skipped"

Outcome = Tuple[str, Optional[ScrapedRecord]]


class SweepOrchestrator:
    """Fan-out/fan-in driver for full and single-pool refreshes.

    Args:
        registry: Source identifier to adapter routing table.
        gateway: Storage gateway for reading pools and writing metrics.
    """

    def __init__(self, registry: Registry, gateway: StorageGateway) -> None:
        self.registry = registry
        self.gateway = gateway
        self._is_running = False
        self.last_summary: Optional[SweepSummary] = None

    @property
    def is_running(self) -> bool:
        return self._is_running

    def register(self, identifier: str, adapter: SourceAdapter) -> None:
        self.registry.register(identifier, adapter)

    def list_sources(self) -> list:
        return self.registry.list_sources()

    async def sweep_all(self) -> Optional[SweepSummary]:
        """Refresh every active pool.

        Returns:
            SweepSummary, or None if another sweep was already running.

        Raises:
            EnumerationFailure: If the pool list could not be loaded.
        """
        if self._is_running:
            logger.info("Scraping already in progress, skipping")
            return None

        self._is_running = True
        summary = SweepSummary()
        logger.info("Starting pool data scraping")
        try:
            try:
                entities = await self.gateway.list_active_entities()
            except Exception as e:
                logger.error("Could not load pools for sweep: %s", e)
                raise EnumerationFailure(f"Failed to load pools: {e}") from e

            summary.total = len(entities)
            logger.info("Found %d pools to scrape", len(entities))

            results = await asyncio.gather(
                *(self._sweep_entity(entity) for entity in entities),
                return_exceptions=True,
            )

            for entity, result in zip(entities, results):
                if isinstance(result, BaseException):
                    logger.error("Failed to scrape pool %s: %r", entity.id, result)
                    summary.failed += 1
                    continue
                outcome, _ = result
                if outcome == SUCCESS:
                    summary.success += 1
                elif outcome == SKIPPED:
                    summary.skipped += 1
                else:
                    summary.failed += 1

            summary.finished_at = datetime.now()
            self.last_summary = summary
            logger.info("Scraping completed: %s", summary)
            return summary
        finally:
            self._is_running = False

    async def sweep_one(self, entity_id: str) -> Optional[ScrapedRecord]:
        """Refresh a single pool by id.

        Returns:
            The persisted record, or None if the pool was skipped or failed.

        Raises:
            EntityNotFound: If no pool has this id.
        """
        entity = await self.gateway.get_entity_by_id(entity_id)
        if entity is None:
            raise EntityNotFound(entity_id)

        logger.info("Manual scrape triggered for pool: %s", entity_id)
        _, record = await self._sweep_entity(entity)
        return record

    async def _sweep_entity(self, entity: Entity) -> Outcome:
        try:
            adapter = self.registry.resolve(entity.source_identifier)
        except RoutingMiss:
            logger.debug("No adapter for %s, skipping pool %s", entity.source_identifier, entity.id)
            return SKIPPED, None

        record = await adapter.fetch(entity)
        if record is None:
            return FAILED, None

        try:
            await self.gateway.update_entity_metrics(entity.id, record.apy, record.tvl)
        except Exception:
            logger.exception("Failed to store metrics for pool %s", entity.id)
            return FAILED, None

        logger.info("Updated pool %s with fresh data: APY %.2f%%", entity.id, record.apy)
        return SUCCESS, record
