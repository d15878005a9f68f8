"""
Morpho vault adapter backed by a per-chain batch query.

Instead of one GraphQL request per vault, every configured chain is fetched
in a single ``vaults`` query and held in a BatchCache; pool lookups are then
served from memory until the cache goes stale.
"""

import logging
from typing import Any, Dict, Iterable, Optional

import httpx

from yieldsync.cache import BatchCache
from yieldsync.errors import ValidationError
from yieldsync.models import Entity, ScrapedRecord, Source
from yieldsync.ratelimit import RateLimiter
from yieldsync.sources.base import SourceAdapter, normalize_rate, parse_number

logger = logging.getLogger(__name__)

ETHEREUM = 1
BASE = 8453

CHAIN_IDS = {
    "ethereum": ETHEREUM,
    "base": BASE,
}

VAULTS_QUERY = """
query GetAllVaults($chainId: [Int!]!, $first: Int!) {
  vaults(where: { chainId_in: $chainId }, first: $first) {
    items {
      address
      symbol
      name
      state {
        netApy
        apy
        totalAssetsUsd
        fee
      }
      curator {
        name
      }
    }
  }
}
"""


def chain_id_for(name: str) -> Optional[int]:
    """Map a chain name (any case) to its chain id."""
    return CHAIN_IDS.get(name.strip().lower())


class MorphoVaultAdapter(SourceAdapter):
    """Fetch Morpho vault APY/TVL from cached batch data.

    Args:
        source: Source definition (GraphQL endpoint and rate limit).
        partitions: Chain ids fetched on every refresh.
        cache_ttl: Seconds a batch stays fresh.
        page_size: ``first`` argument of the vaults query.
    """

    def __init__(
        self,
        source: Source,
        partitions: Iterable[int] = (ETHEREUM, BASE),
        cache_ttl: float = 60.0,
        page_size: int = 1000,
        client: Optional[httpx.AsyncClient] = None,
        limiter: Optional[RateLimiter] = None,
        **cache_kwargs,
    ) -> None:
        super().__init__(source, client=client, limiter=limiter)
        self.page_size = page_size
        self.cache: BatchCache[Dict[str, Any]] = BatchCache(
            name=f"{source.identifier} vaults",
            partitions=partitions,
            loader=self._load_chain,
            ttl=cache_ttl,
            **cache_kwargs,
        )

    async def _load_chain(self, chain_id: int) -> Dict[str, Dict[str, Any]]:
        """Fetch every vault on one chain, keyed by lowercase address."""
        payload = {
            "query": VAULTS_QUERY,
            "variables": {"chainId": [chain_id], "first": self.page_size},
        }
        data = await self._request_json("POST", self.source.base_url, json=payload)

        errors = data.get("errors") if isinstance(data, dict) else None
        if errors:
            message = errors[0].get("message", "Unknown error") if isinstance(errors[0], dict) else errors[0]
            raise ValidationError(f"Morpho API error on chain {chain_id}: {message}")

        if not self.validate(data):
            raise ValidationError(f"Invalid response format from Morpho API for chain {chain_id}")

        vaults = {}
        for item in data["data"]["vaults"]["items"]:
            address = item.get("address") if isinstance(item, dict) else None
            if isinstance(address, str) and address:
                vaults[address.lower()] = item
        return vaults

    async def _fetch(self, entity: Entity) -> Optional[ScrapedRecord]:
        if not entity.address:
            raise ValidationError(f"Pool {entity.id} has no vault address")

        chain_id = entity.chain_id or ETHEREUM
        vault = await self.cache.lookup(chain_id, entity.address.lower())
        if vault is None:
            return None

        state = vault.get("state")
        if not isinstance(state, dict):
            raise ValidationError(f"No state data for vault {entity.address}")

        raw_apy = state.get("apy") if state.get("apy") is not None else state.get("netApy")
        apy = parse_number(raw_apy)
        if apy is None:
            raise ValidationError(f"Vault {entity.address} has no numeric apy or netApy")

        curator = vault.get("curator") or {}
        return ScrapedRecord(
            entity_id=entity.id,
            apy=normalize_rate(apy, self.name),
            tvl=parse_number(state.get("totalAssetsUsd")),
            extra={
                "name": vault.get("name"),
                "symbol": vault.get("symbol"),
                "net_apy": state.get("netApy"),
                "apy": state.get("apy"),
                "fee": state.get("fee"),
                "curator": curator.get("name") if isinstance(curator, dict) else None,
                "chain_id": chain_id,
                "source": "morpho_batch_api",
            },
        )

    def validate(self, data: Any) -> bool:
        if not isinstance(data, dict) or not isinstance(data.get("data"), dict):
            return False
        vaults = data["data"].get("vaults")
        return isinstance(vaults, dict) and isinstance(vaults.get("items"), list)
