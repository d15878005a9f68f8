"""
Configuration management for yieldsync.

Handles loading and accessing configuration from YAML files and environment variables.
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


class Config:
    """Configuration manager for the synchronization engine."""

    # Default configuration values
    DEFAULTS: Dict[str, Any] = {
        "paths": {
            "base_dir": None,  # Set dynamically
            "database": "db/yieldsync.db",
            "logs": "logs",
        },
        "http": {
            "timeout": 30.0,
            "user_agent": "yieldsync/1.0 (DeFi yield synchronization)",
        },
        "sources": {
            "Lido": {
                "adapter": "rest",
                "base_url": "https://eth-api.lido.fi/v1",
                "rate_limit_per_minute": 60,
                "path": "protocol/steth/apr/sma",
                "value_field": "smaApr",
            },
            "Morpho": {
                "adapter": "morpho",
                "base_url": "https://blue-api.morpho.org/graphql",
                "rate_limit_per_minute": 5,
                "cache_ttl": 60,
                "partitions": [1, 8453],
                "page_size": 1000,
            },
        },
        "scheduler": {
            "enabled": True,
            "timezone": "UTC",
            "bootstrap_delay_seconds": 10,
            "misfire_grace_time": 60,
        },
        "jobs": {
            "pool_data_sync": {
                "display_name": "Pool Data Sync",
                "description": "Synchronizes APY and TVL data from Morpho and Lido APIs",
                "interval_minutes": 5,
                "enabled": True,
            },
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "file_enabled": False,
        },
    }

    _instance: Optional["Config"] = None
    _config: Dict[str, Any] = {}
    _base_dir: Optional[Path] = None

    def __new__(cls) -> "Config":
        """Singleton pattern to ensure single configuration instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        """Initialize configuration if not already done."""
        if self._initialized:
            return
        self._initialized = True
        self._config = copy.deepcopy(self.DEFAULTS)
        self._base_dir = self._find_base_dir()
        self._load_config_file()

    def _find_base_dir(self) -> Path:
        """Find the base directory of the installation."""
        env_base = os.environ.get("YIELDSYNC_BASE_DIR")
        if env_base:
            return Path(env_base)

        # scripts/yieldsync/config.py -> scripts/yieldsync -> scripts -> base
        current_file = Path(__file__).resolve()
        return current_file.parent.parent.parent

    def _load_config_file(self) -> None:
        """Load configuration from YAML file if it exists."""
        config_path = self._base_dir / "config" / "config.yaml"
        if config_path.exists():
            with open(config_path, "r", encoding="utf-8") as f:
                file_config = yaml.safe_load(f) or {}
                self._merge_config(file_config)

        self._config["paths"]["base_dir"] = str(self._base_dir)

    def _merge_config(self, new_config: Dict[str, Any]) -> None:
        """Deep merge new configuration into existing configuration."""
        _deep_merge(self._config, new_config)

    @property
    def base_dir(self) -> Path:
        """Get the base directory path."""
        return self._base_dir

    @property
    def database_path(self) -> Path:
        """Get the database file path."""
        return self._base_dir / self._config["paths"]["database"]

    @property
    def logs_dir(self) -> Path:
        """Get the logs directory path."""
        return self._base_dir / self._config["paths"]["logs"]

    @property
    def sources(self) -> Dict[str, Dict[str, Any]]:
        """Get per-source adapter settings keyed by source identifier."""
        return self._config.get("sources", {})

    @property
    def jobs(self) -> Dict[str, Dict[str, Any]]:
        """Get default job settings keyed by job name."""
        return self._config.get("jobs", {})

    def validate_interval(self, value: Any) -> tuple[bool, str]:
        """
        Validate a job interval in minutes.

        Args:
            value: Candidate interval.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if isinstance(value, bool) or not isinstance(value, int):
            return False, f"Interval must be a whole number of minutes, got {value!r}"
        if value < 1:
            return False, f"Interval must be at least 1 minute, got {value}"
        return True, ""

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value by key.

        Supports dot notation for nested keys (e.g., 'scheduler.timezone').
        """
        keys = key.split(".")
        value = self._config
        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value


def _deep_merge(target: Dict[str, Any], updates: Dict[str, Any]) -> None:
    for key, value in updates.items():
        if isinstance(target.get(key), dict) and isinstance(value, dict):
            _deep_merge(target[key], value)
        else:
            target[key] = value


def get_config() -> Config:
    """Return the process-wide configuration instance."""
    return Config()
