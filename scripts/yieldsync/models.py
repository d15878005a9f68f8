"""
Core data types shared by adapters, the orchestrator and the scheduler.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Source:
    """One external protocol API polled by an adapter."""

    identifier: str
    base_url: str
    rate_limit_per_minute: int = 60


@dataclass
class Entity:
    """A tracked yield pool whose metrics are kept fresh."""

    id: str
    source_identifier: str
    chain_id: Optional[int] = None
    address: Optional[str] = None
    apy: Optional[float] = None
    tvl: Optional[float] = None
    name: Optional[str] = None
    is_active: bool = True


@dataclass
class ScrapedRecord:
    """Normalized result of one successful fetch."""

    entity_id: str
    apy: float
    tvl: Optional[float] = None
    extra: Dict[str, Any] = field(default_factory=dict)
    fetched_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["fetched_at"] = self.fetched_at.isoformat()
        return data


@dataclass
class JobConfig:
    """Administrative settings and run statistics for a recurring job."""

    name: str
    interval_minutes: int
    enabled: bool = True
    display_name: Optional[str] = None
    description: Optional[str] = None
    last_run: Optional[str] = None
    run_count: int = 0
    error_count: int = 0
    last_error: Optional[str] = None
    last_error_at: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.interval_minutes, bool) or not isinstance(self.interval_minutes, int):
            raise ValueError(f"interval_minutes must be an int, got {self.interval_minutes!r}")
        if self.interval_minutes < 1:
            raise ValueError(f"interval_minutes must be positive, got {self.interval_minutes}")

    @property
    def interval_ms(self) -> int:
        return self.interval_minutes * 60_000

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SweepSummary:
    """Tally of one full sweep."""

    total: int = 0
    success: int = 0
    failed: int = 0
    skipped: int = 0
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "success": self.success,
            "failed": self.failed,
            "skipped": self.skipped,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": self.duration_seconds,
        }

    def __str__(self) -> str:
        return (
            f"{self.success} successful, {self.failed} failed"
            f"{f', {self.skipped} skipped' if self.skipped else ''}"
            f" of {self.total} pools"
        )
