"""
MigrationConfig - Unified configuration for pgmigrate.

Provides a single, type-safe configuration object covering:
- Control-plane API access (URL, key, HTTP timeout)
- Add-on plans and the configuration variables the migration keys on
- Transfer polling
- Rollback retry policy
- Logging

Example:
    >>> from pgmigrate import MigrationConfig, configure
    >>>
    >>> config = MigrationConfig(api_key="...", poll_interval=5.0)
    >>> configure(config)

Or from the environment / a YAML file:
    >>> config = MigrationConfig.from_env()
    >>> config = MigrationConfig.from_file("pgmigrate.yaml")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from pgmigrate.core.env import get_env

logger = logging.getLogger(__name__)


@dataclass
class MigrationConfig:
    """
    Unified configuration for a migration run.

    Attributes:
        api_url: Base URL of the control-plane API
        api_key: API key used for basic authentication
        database_addon: Add-on provisioned as the destination database
        backup_addon: Add-on that provides the transfer service
        source_var: Config var bound to the database being migrated away from
        transfer_url_var: Config var holding the transfer service endpoint
        poll_interval: Seconds between transfer status polls
        transfer_timeout: Maximum seconds to wait for a transfer (None = no limit)
        http_timeout: Timeout in seconds for each HTTP request
        rollback_max_retries: Extra attempts for a failing rollback
        rollback_backoff: Base delay in seconds between rollback attempts
        log_level: Logging level name
    """

    api_url: str = "https://api.heroku.com"
    api_key: str | None = None
    database_addon: str = "heroku-postgresql:dev"
    backup_addon: str = "pgbackups:plus"
    source_var: str = "SHARED_DATABASE_URL"
    transfer_url_var: str = "PGBACKUPS_URL"
    poll_interval: float = 2.0
    transfer_timeout: float | None = None
    http_timeout: float = 30.0
    rollback_max_retries: int = 2
    rollback_backoff: float = 0.5
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.rollback_max_retries < 0:
            msg = "rollback_max_retries must be >= 0"
            raise ValueError(msg)
        if self.rollback_backoff < 0:
            msg = "rollback_backoff must be >= 0"
            raise ValueError(msg)
        if self.poll_interval <= 0:
            msg = "poll_interval must be > 0"
            raise ValueError(msg)
        if self.transfer_timeout is not None and self.transfer_timeout <= 0:
            msg = "transfer_timeout must be > 0 when set"
            raise ValueError(msg)

    def with_overrides(self, **changes: Any) -> MigrationConfig:
        """Create a new config with some fields changed (immutable update)."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def from_env(cls, load_dotenv: bool = True) -> MigrationConfig:
        """
        Create configuration from environment variables.

        Environment variables:
            HEROKU_API_KEY / PGMIGRATE_API_KEY: API key
            PGMIGRATE_API_URL: Control-plane base URL
            PGMIGRATE_DATABASE_ADDON, PGMIGRATE_BACKUP_ADDON: Add-on plans
            PGMIGRATE_SOURCE_VAR, PGMIGRATE_TRANSFER_URL_VAR: Config var names
            PGMIGRATE_POLL_INTERVAL, PGMIGRATE_TRANSFER_TIMEOUT: Transfer polling
            PGMIGRATE_HTTP_TIMEOUT: Per-request timeout
            PGMIGRATE_ROLLBACK_MAX_RETRIES, PGMIGRATE_ROLLBACK_BACKOFF: Unwind policy
            PGMIGRATE_LOG_LEVEL: Logging level

        Args:
            load_dotenv: If True, loads .env file before reading variables

        Raises:
            ValueError: If a numeric variable is malformed
        """
        env = get_env()
        if load_dotenv:
            env.load()

        defaults = cls()
        return cls(
            api_url=env.get("PGMIGRATE_API_URL", defaults.api_url),
            api_key=env.get("PGMIGRATE_API_KEY") or env.get("HEROKU_API_KEY"),
            database_addon=env.get("PGMIGRATE_DATABASE_ADDON", defaults.database_addon),
            backup_addon=env.get("PGMIGRATE_BACKUP_ADDON", defaults.backup_addon),
            source_var=env.get("PGMIGRATE_SOURCE_VAR", defaults.source_var),
            transfer_url_var=env.get("PGMIGRATE_TRANSFER_URL_VAR", defaults.transfer_url_var),
            poll_interval=env.get_float("PGMIGRATE_POLL_INTERVAL", defaults.poll_interval),
            transfer_timeout=env.get_float("PGMIGRATE_TRANSFER_TIMEOUT", None),
            http_timeout=env.get_float("PGMIGRATE_HTTP_TIMEOUT", defaults.http_timeout),
            rollback_max_retries=env.get_int(
                "PGMIGRATE_ROLLBACK_MAX_RETRIES", defaults.rollback_max_retries
            ),
            rollback_backoff=env.get_float("PGMIGRATE_ROLLBACK_BACKOFF", defaults.rollback_backoff),
            log_level=env.get("PGMIGRATE_LOG_LEVEL", defaults.log_level),
        )

    @classmethod
    def from_file(cls, file_path: str | Path, substitute_env: bool = True) -> MigrationConfig:
        """
        Load configuration from a YAML file.

        Supports environment variable substitution using ${VAR} syntax.
        Unknown keys are ignored with a warning.

        Example:
            # In pgmigrate.yaml:
            # api_key: ${HEROKU_API_KEY:?API key required}
            # poll_interval: 5
            # rollback:
            #   max_retries: 3
            #   backoff: 1.0
        """
        path = Path(file_path)
        if not path.exists():
            msg = f"Configuration file not found: {file_path}"
            raise FileNotFoundError(msg)

        with path.open() as f:
            data = yaml.safe_load(f)

        if not data:
            return cls()

        if substitute_env:
            env = get_env()
            env.load()
            data = env.expand(data)

        # Nested sections flatten onto the dataclass fields.
        rollback = data.pop("rollback", None) or {}
        if "max_retries" in rollback:
            data["rollback_max_retries"] = rollback["max_retries"]
        if "backoff" in rollback:
            data["rollback_backoff"] = rollback["backoff"]

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown configuration keys: {', '.join(unknown)}")

        return cls(**cls._coerce({k: v for k, v in data.items() if k in known}))

    @staticmethod
    def _coerce(data: dict[str, Any]) -> dict[str, Any]:
        """Convert expanded strings back to the numeric types fields expect."""
        floats = ("poll_interval", "transfer_timeout", "http_timeout", "rollback_backoff")
        for name in floats:
            if isinstance(data.get(name), str):
                data[name] = float(data[name]) if data[name].strip() else None
        if isinstance(data.get("rollback_max_retries"), str):
            data["rollback_max_retries"] = int(data["rollback_max_retries"])
        return data


# Global configuration singleton
_global_config: MigrationConfig | None = None


def get_config() -> MigrationConfig:
    """Get the global migration configuration."""
    global _global_config
    if _global_config is None:
        _global_config = MigrationConfig()
    return _global_config


def configure(config: MigrationConfig) -> None:
    """Set the global migration configuration."""
    global _global_config
    _global_config = config
    logger.info(f"Migration configured: api_url={config.api_url}")
