"""Well-known service configuration settings of the web farm role.

All reads go through the configuration bridge so that live edits on the
platform are picked up without a restart.
"""

from __future__ import annotations

import logging

from webfarm.config.dynamic_config import ConfigurationBridge

logger = logging.getLogger(__name__)

STORAGE_CONNECTION_STRING_KEY = "StorageConnectionString"
SYNC_ENABLED_KEY = "SyncEnabled"
SYNC_INTERVAL_KEY = "SyncIntervalInSeconds"

DEFAULT_SYNC_INTERVAL_SECONDS = 15.0

# Site subdirectories the sync service never mirrors
DIRECTORIES_TO_EXCLUDE: tuple[str, ...] = ("temp", "tmp", "logs")


class RoleSettings:
    """Typed accessors over the role's configuration settings."""

    def __init__(self, bridge: ConfigurationBridge):
        self._bridge = bridge

    @property
    def storage_connection_key(self) -> str:
        return STORAGE_CONNECTION_STRING_KEY

    @property
    def excluded_directories(self) -> tuple[str, ...]:
        return DIRECTORIES_TO_EXCLUDE

    def is_sync_enabled(self) -> bool:
        value = self._bridge.get(SYNC_ENABLED_KEY, "true")
        return value.strip().lower() in ("true", "1", "yes", "on")

    def sync_interval(self) -> float:
        """Seconds between sync cycles; invalid or non-positive values fall back."""
        raw = self._bridge.get(SYNC_INTERVAL_KEY, "")
        if not raw:
            return DEFAULT_SYNC_INTERVAL_SECONDS
        try:
            interval = float(raw)
        except ValueError:
            logger.warning(f"[RoleSettings] Invalid {SYNC_INTERVAL_KEY}={raw!r}, using default")
            return DEFAULT_SYNC_INTERVAL_SECONDS
        return interval if interval > 0 else DEFAULT_SYNC_INTERVAL_SECONDS


__all__ = [
    "DEFAULT_SYNC_INTERVAL_SECONDS",
    "DIRECTORIES_TO_EXCLUDE",
    "RoleSettings",
    "STORAGE_CONNECTION_STRING_KEY",
    "SYNC_ENABLED_KEY",
    "SYNC_INTERVAL_KEY",
]
