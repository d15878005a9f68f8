"""
Base class for protocol source adapters.
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from yieldsync.errors import SyncError
from yieldsync.http import make_client, request_json
from yieldsync.models import Entity, ScrapedRecord, Source
from yieldsync.ratelimit import RateLimiter

logger = logging.getLogger(__name__)

# Fractions in this band could be either a ~100% rate or a ~1% rate.
AMBIGUOUS_RATE_BAND = (0.95, 1.0)


def parse_number(value: Any) -> Optional[float]:
    """Parse a JSON string or number into a finite float, or None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def normalize_rate(value: float, source: str = "") -> float:
    """Convert a reported rate to a percentage rounded to 2 decimals.

    Values below 1 are treated as fractions and scaled by 100; values of 1 or
    more are taken to be percentages already.
    """
    if value < 0:
        logger.warning("[%s] Negative rate %s reported, scaling as a fraction", source, value)
    elif AMBIGUOUS_RATE_BAND[0] <= value < AMBIGUOUS_RATE_BAND[1]:
        logger.warning("[%s] Rate %s is ambiguous between fraction and percentage", source, value)

    percentage = value * 100 if value < 1 else value
    return round(percentage, 2)


class SourceAdapter(ABC):
    """Abstract base class for protocol sources.

    Subclasses implement ``_fetch`` and ``validate``; ``fetch`` wraps them so
    that no error escapes and a single bad pool cannot abort a sweep.
    """

    def __init__(
        self,
        source: Source,
        client: Optional[httpx.AsyncClient] = None,
        limiter: Optional[RateLimiter] = None,
    ) -> None:
        self.source = source
        self._client = client
        self._owns_client = client is None
        self.limiter = limiter or RateLimiter.per_minute(source.rate_limit_per_minute, name=source.identifier)

    @property
    def name(self) -> str:
        """Human-readable source name."""
        return self.source.identifier

    @property
    def source_id(self) -> str:
        """Identifier pools use to route to this adapter."""
        return self.source.identifier

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = make_client()
        return self._client

    async def fetch(self, entity: Entity) -> Optional[ScrapedRecord]:
        """Fetch fresh metrics for one pool.

        Returns:
            ScrapedRecord, or None if anything went wrong.
        """
        try:
            record = await self._fetch(entity)
        except SyncError as e:
            logger.error("[%s] Error scraping pool %s: %s", self.name, entity.id, e)
            return None
        except Exception:
            logger.exception("[%s] Unexpected error scraping pool %s", self.name, entity.id)
            return None

        if record is not None:
            logger.info("[%s] Successfully scraped pool %s: APY %.2f%%", self.name, entity.id, record.apy)
        return record

    @abstractmethod
    async def _fetch(self, entity: Entity) -> Optional[ScrapedRecord]:
        """Fetch and normalize metrics; may raise SyncError subclasses."""
        ...

    @abstractmethod
    def validate(self, data: Any) -> bool:
        """Check that a response body has the shape this adapter reads."""
        ...

    async def _request_json(self, method: str, url: str, **kwargs) -> Any:
        async with self.limiter:
            return await request_json(self.client, method, url, source=self.source_id, **kwargs)

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
