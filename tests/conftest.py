"""Shared test fixtures for the yieldsync test suite."""

import httpx
import pytest
from yieldsync.config import Config
from yieldsync.database import Database
from yieldsync.models import Source
from yieldsync.ratelimit import RateLimiter


class FakeClock:
    """Manually advanced monotonic clock; ``sleep`` advances it instantly."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fresh_config(tmp_path, monkeypatch):
    """Create a Config instance with reset singleton state pointed at a temp directory."""
    Config._instance = None
    monkeypatch.setenv("YIELDSYNC_BASE_DIR", str(tmp_path))
    cfg = Config()
    yield cfg
    Config._instance = None


@pytest.fixture
def tmp_db(tmp_path):
    """Create a Database instance using a temp-dir SQLite file."""
    db_path = tmp_path / "test.db"
    return Database(db_path=db_path)


@pytest.fixture
def populated_db(tmp_db):
    """tmp_db with 4 sample pools pre-inserted."""
    tmp_db.add_pool("lido-steth", "Lido", name="Lido stETH", chain_id=1)
    tmp_db.add_pool(
        "morpho-usdc",
        "Morpho",
        name="Steakhouse USDC",
        chain_id=1,
        address="0xBEEF01735c132Ada46AA9aA4c54623cAA92A64CB",
    )
    tmp_db.add_pool(
        "morpho-base-weth",
        "Morpho",
        name="Moonwell WETH",
        chain_id=8453,
        address="0xa0E430870c4604CcfC7B38Ca7845B1FF653D0ff1",
    )
    tmp_db.add_pool("aave-usdt", "Aave", name="Aave USDT", chain_id=1, is_active=False)
    return tmp_db


def make_source(identifier: str = "Lido", base_url: str = "https://api.test/v1", rate: int = 600) -> Source:
    return Source(identifier=identifier, base_url=base_url, rate_limit_per_minute=rate)


def mock_client(handler) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by ``handler(request)``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def unlimited() -> RateLimiter:
    return RateLimiter(max_calls=10_000, name="test")


class StaticAdapter:
    """Adapter serving fixed APY/TVL per pool id; unknown pools fail."""

    def __init__(self, name: str, rates: dict, cache=None) -> None:
        self.name = name
        self.rates = rates
        if cache is not None:
            self.cache = cache
        self.closed = False

    async def fetch(self, entity):
        from yieldsync.models import ScrapedRecord

        if entity.id not in self.rates:
            return None
        apy, tvl = self.rates[entity.id]
        return ScrapedRecord(entity_id=entity.id, apy=apy, tvl=tvl)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def services(fresh_config, populated_db, fake_clock):
    """Engine services over populated_db with static Lido/Morpho adapters."""
    from yieldsync.cache import BatchCache
    from yieldsync.services import build_services
    from yieldsync.sources.registry import Registry

    async def loader(partition):
        return {}

    fresh_config._config["scheduler"]["bootstrap_delay_seconds"] = None

    registry = Registry()
    registry.register("Lido", StaticAdapter("Lido", {"lido-steth": (2.91, None)}))
    registry.register(
        "Morpho",
        StaticAdapter(
            "Morpho",
            {"morpho-usdc": (4.38, 1_250_000.0)},
            cache=BatchCache("Morpho vaults", partitions=[1, 8453], loader=loader, clock=fake_clock),
        ),
    )
    return build_services(config=fresh_config, db=populated_db, registry=registry)
