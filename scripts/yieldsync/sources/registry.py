"""
Source registry - maps source identifiers to adapters.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional, Type

import httpx

from yieldsync.errors import RoutingMiss
from yieldsync.models import Source
from yieldsync.sources.base import SourceAdapter
from yieldsync.sources.morpho import MorphoVaultAdapter
from yieldsync.sources.rest import RestMetricAdapter

logger = logging.getLogger(__name__)

ADAPTER_TYPES: Dict[str, Type[SourceAdapter]] = {
    "rest": RestMetricAdapter,
    "morpho": MorphoVaultAdapter,
}

_SOURCE_KEYS = {"adapter", "base_url", "rate_limit_per_minute", "enabled"}


class Registry:
    """Exact-match routing table from source identifier to adapter."""

    def __init__(self) -> None:
        self._adapters: Dict[str, SourceAdapter] = {}

    def register(self, identifier: str, adapter: SourceAdapter) -> None:
        if identifier in self._adapters:
            logger.info("Replacing adapter for source: %s", identifier)
        self._adapters[identifier] = adapter
        logger.info("Added adapter for source: %s", identifier)

    def resolve(self, identifier: str) -> SourceAdapter:
        """Return the adapter for ``identifier``.

        Raises:
            RoutingMiss: If nothing is registered under that identifier.
        """
        try:
            return self._adapters[identifier]
        except KeyError:
            raise RoutingMiss(identifier) from None

    def list_sources(self) -> List[str]:
        return list(self._adapters)

    def adapters(self) -> Iterator[SourceAdapter]:
        return iter(self._adapters.values())

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._adapters

    def __len__(self) -> int:
        return len(self._adapters)

    async def aclose(self) -> None:
        for adapter in self._adapters.values():
            await adapter.aclose()


def build_adapter(
    identifier: str,
    settings: Dict[str, Any],
    client: Optional[httpx.AsyncClient] = None,
) -> SourceAdapter:
    """Instantiate one adapter from its ``sources.<identifier>`` settings.

    Raises:
        ValueError: If the adapter type is unknown or base_url is missing.
    """
    adapter_type = settings.get("adapter", "rest")
    cls = ADAPTER_TYPES.get(adapter_type)
    if cls is None:
        raise ValueError(f"Unknown adapter type '{adapter_type}' for source {identifier}")
    if not settings.get("base_url"):
        raise ValueError(f"Source {identifier} has no base_url")

    source = Source(
        identifier=identifier,
        base_url=settings["base_url"],
        rate_limit_per_minute=int(settings.get("rate_limit_per_minute", 60)),
    )
    options = {k: v for k, v in settings.items() if k not in _SOURCE_KEYS}
    return cls(source, client=client, **options)


def build_registry(
    sources: Dict[str, Dict[str, Any]],
    client: Optional[httpx.AsyncClient] = None,
) -> Registry:
    """Build a registry from the ``sources`` config section.

    Sources that are disabled or fail to build are skipped with a log entry.
    """
    registry = Registry()
    for identifier, settings in sources.items():
        if not settings.get("enabled", True):
            logger.info("Source %s disabled in config", identifier)
            continue
        try:
            registry.register(identifier, build_adapter(identifier, settings, client=client))
        except (TypeError, ValueError):
            logger.warning("Failed to load adapter for source %s", identifier, exc_info=True)

    logger.info("Registry configured with %d sources: %s", len(registry), ", ".join(registry.list_sources()))
    return registry
