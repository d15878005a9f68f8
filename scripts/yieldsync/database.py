"""
SQLite persistence for pools and job configuration.

Backs the storage gateway used by the orchestrator and the JobConfig store
used by the scheduler.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional

from .models import Entity, JobConfig

logger = logging.getLogger(__name__)


class Database:
    """Database manager for pools and job configurations."""

    def __init__(self, db_path: Path) -> None:
        """
        Initialize the database manager.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = Path(db_path)
        self._ensure_directory()
        self._init_schema()

    def _ensure_directory(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager for database connections.

        Yields:
            SQLite connection with row factory set to sqlite3.Row.
        """
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        """Initialize the database schema."""
        with self.connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS pools (
                    id TEXT PRIMARY KEY,
                    platform TEXT NOT NULL,
                    name TEXT,
                    chain_id INTEGER,
                    address TEXT,
                    apy REAL,
                    tvl REAL,
                    is_active BOOLEAN DEFAULT 1,
                    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    metrics_updated_at TEXT
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS job_configs (
                    name TEXT PRIMARY KEY,
                    display_name TEXT,
                    description TEXT,
                    interval_minutes INTEGER NOT NULL CHECK (interval_minutes > 0),
                    enabled BOOLEAN NOT NULL DEFAULT 1,
                    last_run TEXT,
                    run_count INTEGER NOT NULL DEFAULT 0,
                    error_count INTEGER NOT NULL DEFAULT 0,
                    last_error TEXT,
                    last_error_at TEXT,
                    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("CREATE INDEX IF NOT EXISTS idx_pools_platform ON pools(platform)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_pools_is_active ON pools(is_active)")

    # ── Pools ──────────────────────────────────────────────

    def add_pool(
        self,
        pool_id: str,
        platform: str,
        name: Optional[str] = None,
        chain_id: Optional[int] = None,
        address: Optional[str] = None,
        is_active: bool = True,
    ) -> None:
        """Insert a pool, or update its identity fields if it already exists."""
        now = datetime.now().isoformat()
        with self.connection() as conn:
            conn.execute(
                """
                INSERT INTO pools (id, platform, name, chain_id, address, is_active, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    platform = excluded.platform,
                    name = excluded.name,
                    chain_id = excluded.chain_id,
                    address = excluded.address,
                    is_active = excluded.is_active,
                    updated_at = excluded.updated_at
                """,
                (pool_id, platform, name, chain_id, address, is_active, now, now),
            )

    def get_pool(self, pool_id: str) -> Optional[Entity]:
        with self.connection() as conn:
            row = conn.execute("SELECT * FROM pools WHERE id = ?", (pool_id,)).fetchone()
            return self._row_to_entity(row) if row else None

    def list_pools(self, active_only: bool = False) -> List[Entity]:
        query = "SELECT * FROM pools"
        if active_only:
            query += " WHERE is_active = 1"
        query += " ORDER BY apy DESC, id"
        with self.connection() as conn:
            return [self._row_to_entity(row) for row in conn.execute(query).fetchall()]

    def list_active_pools(self) -> List[Entity]:
        return self.list_pools(active_only=True)

    def update_pool_metrics(self, pool_id: str, apy: float, tvl: Optional[float] = None) -> bool:
        """
        Write fresh metrics for a pool.

        Args:
            pool_id: Pool to update.
            apy: APY as a percentage.
            tvl: TVL in USD; the stored value is kept when None.

        Returns:
            True if a pool row was updated.
        """
        now = datetime.now().isoformat()
        with self.connection() as conn:
            cursor = conn.execute(
                """
                UPDATE pools
                SET apy = ?, tvl = COALESCE(?, tvl), metrics_updated_at = ?, updated_at = ?
                WHERE id = ?
                """,
                (apy, tvl, now, now, pool_id),
            )
            return cursor.rowcount > 0

    def set_pool_active(self, pool_id: str, is_active: bool) -> bool:
        with self.connection() as conn:
            cursor = conn.execute(
                "UPDATE pools SET is_active = ?, updated_at = ? WHERE id = ?",
                (is_active, datetime.now().isoformat(), pool_id),
            )
            return cursor.rowcount > 0

    def get_statistics(self) -> Dict[str, Any]:
        with self.connection() as conn:
            total = conn.execute("SELECT COUNT(*) FROM pools").fetchone()[0]
            active = conn.execute("SELECT COUNT(*) FROM pools WHERE is_active = 1").fetchone()[0]
            by_platform = {
                row["platform"]: row["count"]
                for row in conn.execute(
                    "SELECT platform, COUNT(*) AS count FROM pools GROUP BY platform"
                ).fetchall()
            }
        return {"total_pools": total, "active_pools": active, "by_platform": by_platform}

    @staticmethod
    def _row_to_entity(row: sqlite3.Row) -> Entity:
        return Entity(
            id=row["id"],
            source_identifier=row["platform"],
            chain_id=row["chain_id"],
            address=row["address"],
            apy=row["apy"],
            tvl=row["tvl"],
            name=row["name"],
            is_active=bool(row["is_active"]),
        )

    # ── Job configuration ──────────────────────────────────

    def seed_job_configs(self, defaults: Dict[str, Dict[str, Any]]) -> int:
        """
        Insert default job configs that are not stored yet.

        Existing rows keep their interval and enabled flag; only display
        name and description are refreshed.

        Returns:
            Number of job configs added.
        """
        added = 0
        with self.connection() as conn:
            for name, settings in defaults.items():
                exists = conn.execute("SELECT 1 FROM job_configs WHERE name = ?", (name,)).fetchone()
                if exists:
                    conn.execute(
                        "UPDATE job_configs SET display_name = ?, description = ? WHERE name = ?",
                        (settings.get("display_name"), settings.get("description"), name),
                    )
                    continue
                conn.execute(
                    """
                    INSERT INTO job_configs (name, display_name, description, interval_minutes, enabled)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        name,
                        settings.get("display_name"),
                        settings.get("description"),
                        int(settings["interval_minutes"]),
                        bool(settings.get("enabled", True)),
                    ),
                )
                added += 1
                logger.info("Added job config: %s", name)
        return added

    def get_job_config(self, name: str) -> Optional[JobConfig]:
        with self.connection() as conn:
            row = conn.execute("SELECT * FROM job_configs WHERE name = ?", (name,)).fetchone()
            return self._row_to_job_config(row) if row else None

    def list_job_configs(self) -> List[JobConfig]:
        with self.connection() as conn:
            rows = conn.execute("SELECT * FROM job_configs ORDER BY name").fetchall()
            return [self._row_to_job_config(row) for row in rows]

    def update_job_config(
        self,
        name: str,
        interval_minutes: Optional[int] = None,
        enabled: Optional[bool] = None,
    ) -> Optional[JobConfig]:
        """
        Change a job's interval and/or enabled flag.

        Returns:
            The updated JobConfig, or None if no such job exists.

        Raises:
            ValueError: If interval_minutes is not a positive integer.
        """
        if interval_minutes is not None and (isinstance(interval_minutes, bool) or interval_minutes < 1):
            raise ValueError(f"interval_minutes must be positive, got {interval_minutes}")

        updates = []
        params: List[Any] = []
        if interval_minutes is not None:
            updates.append("interval_minutes = ?")
            params.append(int(interval_minutes))
        if enabled is not None:
            updates.append("enabled = ?")
            params.append(bool(enabled))

        if updates:
            updates.append("updated_at = ?")
            params.append(datetime.now().isoformat())
            with self.connection() as conn:
                conn.execute(
                    f"UPDATE job_configs SET {', '.join(updates)} WHERE name = ?",
                    params + [name],
                )

        job = self.get_job_config(name)
        if job:
            logger.info(
                "Updated job config: %s - interval: %dmin, enabled: %s",
                name,
                job.interval_minutes,
                job.enabled,
            )
        return job

    def record_job_run(self, name: str, success: bool, error: Optional[str] = None) -> None:
        """Update run statistics after a job execution."""
        now = datetime.now().isoformat()
        with self.connection() as conn:
            if success:
                conn.execute(
                    """
                    UPDATE job_configs
                    SET last_run = ?, run_count = run_count + 1, last_error = NULL, last_error_at = NULL
                    WHERE name = ?
                    """,
                    (now, name),
                )
            else:
                conn.execute(
                    """
                    UPDATE job_configs
                    SET last_run = ?, run_count = run_count + 1, error_count = error_count + 1,
                        last_error = ?, last_error_at = ?
                    WHERE name = ?
                    """,
                    (now, error or "Unknown error", now, name),
                )

    @staticmethod
    def _row_to_job_config(row: sqlite3.Row) -> JobConfig:
        return JobConfig(
            name=row["name"],
            interval_minutes=row["interval_minutes"],
            enabled=bool(row["enabled"]),
            display_name=row["display_name"],
            description=row["description"],
            last_run=row["last_run"],
            run_count=row["run_count"],
            error_count=row["error_count"],
            last_error=row["last_error"],
            last_error_at=row["last_error_at"],
        )
