"""
REST metric adapter - one GET per pool returning ``{"data": {<field>: value}}``.

Lido's stETH APR endpoint is the stock configuration.
"""

import logging
from typing import Any, Optional

import httpx

from yieldsync.errors import ValidationError
from yieldsync.models import Entity, ScrapedRecord, Source
from yieldsync.ratelimit import RateLimiter
from yieldsync.sources.base import SourceAdapter, normalize_rate, parse_number

logger = logging.getLogger(__name__)


class RestMetricAdapter(SourceAdapter):
    """Fetch a single rate from a REST endpoint.

    Args:
        source: Source definition (base URL and rate limit).
        path: Endpoint path appended to the base URL.
        value_field: Key under ``data`` holding the rate.
    """

    def __init__(
        self,
        source: Source,
        path: str = "metric",
        value_field: str = "value",
        client: Optional[httpx.AsyncClient] = None,
        limiter: Optional[RateLimiter] = None,
    ) -> None:
        super().__init__(source, client=client, limiter=limiter)
        self.path = path
        self.value_field = value_field

    @property
    def url(self) -> str:
        return f"{self.source.base_url.rstrip('/')}/{self.path.lstrip('/')}"

    async def _fetch(self, entity: Entity) -> Optional[ScrapedRecord]:
        data = await self._request_json("GET", self.url)

        if not self.validate(data):
            raise ValidationError(f"Invalid response format from {self.name} API")

        raw = data["data"][self.value_field]
        return ScrapedRecord(
            entity_id=entity.id,
            apy=normalize_rate(parse_number(raw), self.name),
            extra={
                "original_value": raw,
                "source": f"{self.source_id.lower()}_api",
            },
        )

    def validate(self, data: Any) -> bool:
        if not isinstance(data, dict) or not isinstance(data.get("data"), dict):
            return False
        return parse_number(data["data"].get(self.value_field)) is not None
