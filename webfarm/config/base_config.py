"""Environment-driven tunables for the web farm role.

Provides type-safe environment variable loading for the knobs that are not
service configuration settings (those go through the configuration bridge):
connection limits, loop intervals, drain policy, diagnostics locations.

Usage:
    from webfarm.config.base_config import RoleConfig

    config = RoleConfig.from_env()
    print(config.connection_limit)

Environment variables (prefix ``WEBFARM_ROLE_``):
    CONNECTION_LIMIT: Max concurrent outbound connections (default: 12)
    IDLE_INTERVAL: Seconds between wake-ups of the run loop (default: 10)
    DRAIN_POLL_INTERVAL: Seconds between drain samples (default: 1)
    MAX_DRAIN_SECONDS: Upper bound on the drain wait, 0 = unbounded (default: 0)
    METRICS_PORT: Prometheus exporter port (default: 9090)
    DIAGNOSTICS_DIR: Where persisted exceptions are written
    APP_SETTINGS: Path of the local app settings YAML
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, ClassVar, TypeVar

T = TypeVar("T", bound="BaseRoleConfig")


@dataclass
class BaseRoleConfig:
    """Base configuration with environment variable helpers.

    Subclasses should:
    1. Override `_env_prefix` for their env var namespace
    2. Add fields as dataclass fields
    3. Implement `from_env()` using the helper methods
    """

    _env_prefix: ClassVar[str] = "WEBFARM"

    # -------------------------------------------------------------------------
    # Environment Variable Helpers
    # -------------------------------------------------------------------------

    @classmethod
    def _make_env_key(cls, suffix: str) -> str:
        """Create full environment variable name from suffix."""
        return f"{cls._env_prefix}_{suffix}"

    @classmethod
    def _get_env_bool(cls, suffix: str, default: bool) -> bool:
        """Get boolean from environment variable.

        Recognizes: "true", "1", "yes", "on" as True (case-insensitive).
        """
        value = os.environ.get(cls._make_env_key(suffix))
        if value is None:
            return default
        return value.strip().lower() in ("true", "1", "yes", "on")

    @classmethod
    def _get_env_int(cls, suffix: str, default: int) -> int:
        value = os.environ.get(cls._make_env_key(suffix))
        if value is None:
            return default
        try:
            return int(value)
        except (ValueError, TypeError):
            return default

    @classmethod
    def _get_env_float(cls, suffix: str, default: float) -> float:
        value = os.environ.get(cls._make_env_key(suffix))
        if value is None:
            return default
        try:
            return float(value)
        except (ValueError, TypeError):
            return default

    @classmethod
    def _get_env_str(cls, suffix: str, default: str) -> str:
        value = os.environ.get(cls._make_env_key(suffix))
        if value is None:
            return default
        return value.strip()

    @classmethod
    def from_env(cls: type[T]) -> T:
        """Create config from environment variables. Override in subclasses."""
        return cls()

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary for logging."""
        result = {}
        for f in fields(self):
            if not f.name.startswith("_"):
                value = getattr(self, f.name)
                result[f.name] = str(value) if isinstance(value, Path) else value
        return result


def _default_diagnostics_dir() -> Path:
    return Path(tempfile.gettempdir()) / "webfarm" / "diagnostics"


@dataclass
class RoleConfig(BaseRoleConfig):
    """Tunables for the role lifecycle controller."""

    _env_prefix: ClassVar[str] = "WEBFARM_ROLE"

    connection_limit: int = 12
    idle_interval_seconds: float = 10.0
    drain_poll_interval_seconds: float = 1.0
    # 0 means wait for in-flight requests forever
    max_drain_seconds: float = 0.0
    metrics_port: int = 9090
    diagnostics_dir: Path | None = None
    app_settings_path: Path | None = None

    def __post_init__(self) -> None:
        if self.diagnostics_dir is None:
            self.diagnostics_dir = _default_diagnostics_dir()

    @property
    def drain_budget_seconds(self) -> float | None:
        """Drain budget, or None when the drain wait is unbounded."""
        return self.max_drain_seconds if self.max_drain_seconds > 0 else None

    @classmethod
    def from_env(cls) -> RoleConfig:
        diagnostics_dir = cls._get_env_str("DIAGNOSTICS_DIR", "")
        app_settings = cls._get_env_str("APP_SETTINGS", "")
        return cls(
            connection_limit=cls._get_env_int("CONNECTION_LIMIT", 12),
            idle_interval_seconds=cls._get_env_float("IDLE_INTERVAL", 10.0),
            drain_poll_interval_seconds=cls._get_env_float("DRAIN_POLL_INTERVAL", 1.0),
            max_drain_seconds=cls._get_env_float("MAX_DRAIN_SECONDS", 0.0),
            metrics_port=cls._get_env_int("METRICS_PORT", 9090),
            diagnostics_dir=Path(diagnostics_dir) if diagnostics_dir else None,
            app_settings_path=Path(app_settings) if app_settings else None,
        )


__all__ = [
    "BaseRoleConfig",
    "RoleConfig",
]
