"""
Storage gateway consumed by the orchestrator.

The orchestrator only needs three operations; ``DatabaseGateway`` provides
them on top of the SQLite ``Database`` by running each blocking query in a
worker thread.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import List, Optional

from .database import Database
from .models import Entity


class StorageGateway(ABC):
    """Read the pool list, write scrape results back."""

    @abstractmethod
    async def list_active_entities(self) -> List[Entity]:
        ...

    @abstractmethod
    async def get_entity_by_id(self, entity_id: str) -> Optional[Entity]:
        ...

    @abstractmethod
    async def update_entity_metrics(self, entity_id: str, apy: float, tvl: Optional[float] = None) -> None:
        ...


class DatabaseGateway(StorageGateway):
    """StorageGateway backed by the SQLite Database."""

    def __init__(self, db: Database) -> None:
        self.db = db

    async def list_active_entities(self) -> List[Entity]:
        return await asyncio.to_thread(self.db.list_active_pools)

    async def get_entity_by_id(self, entity_id: str) -> Optional[Entity]:
        return await asyncio.to_thread(self.db.get_pool, entity_id)

    async def update_entity_metrics(self, entity_id: str, apy: float, tvl: Optional[float] = None) -> None:
        await asyncio.to_thread(self.db.update_pool_metrics, entity_id, apy, tvl)
