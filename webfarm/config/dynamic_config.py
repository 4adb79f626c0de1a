"""Dynamic Configuration Bridge.

Every read of a named configuration setting goes through one
``ConfigurationBridge`` owned by the role. The bridge resolves values from the
host platform, or from the local settings store when the platform is not
available, and keeps platform-backed settings live: the first read of a name
subscribes it to the platform's change notifications, and later edits are
re-applied through the same setter. A setting that cannot be re-applied
leaves the instance half-configured, so the bridge asks the platform to
recycle the instance instead.

Usage:
    from webfarm.config.dynamic_config import ConfigurationBridge

    bridge = ConfigurationBridge(platform, LocalSettingsStore.load())

    # Plain reads (value kept current by change notifications)
    interval = bridge.get("SyncIntervalInSeconds", "15")

    # Push-style: a consumer that wants to be re-configured on change
    bridge.publish("StorageConnectionString", storage_client.set_connection_string)

Thread Safety:
    Change notifications are delivered on platform threads and can race with
    reads. The subscription table and applied values are guarded by one
    re-entrant lock, so check-and-subscribe is atomic and a setter may read
    other settings through the bridge.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from typing import Protocol

from webfarm.config.local_store import LocalSettingsStore
from webfarm.metrics import CONFIG_CHANGES_APPLIED, RECYCLE_REQUESTS
from webfarm.platform.base import (
    ConfigurationSettingChange,
    HostPlatform,
    PlatformChange,
    SettingNotFoundError,
)

logger = logging.getLogger(__name__)

# Applies a resolved value; returns False when the value could not be applied
SettingSetter = Callable[[str | None], bool]


class SettingSource(Protocol):
    """Strategy resolving setting values."""

    supports_notifications: bool

    def resolve(self, name: str) -> str | None:
        ...


class PlatformSettingSource:
    """Resolves settings from the host platform's service configuration."""

    supports_notifications = True

    def __init__(self, platform: HostPlatform):
        self._platform = platform

    def resolve(self, name: str) -> str | None:
        return self._platform.get_config_value(name)


class LocalSettingSource:
    """Resolves settings from the local app settings store."""

    supports_notifications = False

    def __init__(self, store: LocalSettingsStore):
        self._store = store

    def resolve(self, name: str) -> str | None:
        return self._store.get(name)


class ConfigurationBridge:
    """Single entry point for reading named configuration settings."""

    def __init__(
        self,
        platform: HostPlatform,
        local_store: LocalSettingsStore | None = None,
    ):
        """Initialize the bridge and pick the resolution strategy.

        Args:
            platform: Host platform (also receives recycle requests)
            local_store: Fallback store used when the platform is unavailable
        """
        self._platform = platform
        self._source: SettingSource
        if platform.is_available():
            self._source = PlatformSettingSource(platform)
        else:
            self._source = LocalSettingSource(local_store or LocalSettingsStore())

        self._lock = threading.RLock()
        self._subscriptions: dict[str, SettingSetter] = {}
        self._values: dict[str, str | None] = {}
        self._read_defaults: dict[str, str | None] = {}
        self._listening = False

        logger.info(f"[ConfigBridge] Resolving settings via {type(self._source).__name__}")

    @property
    def uses_platform(self) -> bool:
        return isinstance(self._source, PlatformSettingSource)

    def is_subscribed(self, name: str) -> bool:
        with self._lock:
            return name in self._subscriptions

    def subscribed_names(self) -> list[str]:
        with self._lock:
            return sorted(self._subscriptions)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def publish(self, name: str, setter: SettingSetter) -> bool:
        """Resolve a setting and apply it through setter.

        With the platform source, the first publish of a name subscribes it to
        change notifications; later publishes of the same name never subscribe
        again and keep the original setter.

        Args:
            name: Setting name
            setter: Receives the resolved value, returns whether it was applied

        Returns:
            The setter's result
        """
        with self._lock:
            value = self._source.resolve(name)
            applied = self._apply(name, value, setter)

            if self._source.supports_notifications and name not in self._subscriptions:
                self._subscriptions[name] = setter
                self._ensure_listening()
                logger.debug(f"[ConfigBridge] Subscribed to changes of {name}")

            return applied

    def get(self, name: str, default: str | None = None) -> str | None:
        """Read a setting through the bridge.

        Platform-backed values are resolved once and then kept current by
        change notifications; local values are looked up on every read. If a
        setting read with a default is later removed from the platform, reads
        fall back to the default rather than recycling the instance.

        Raises:
            SettingNotFoundError: If the platform does not define the setting
                and no default was given
        """
        if not self._source.supports_notifications:
            value = self._source.resolve(name)
            return default if value is None else value

        with self._lock:
            if name not in self._subscriptions:
                try:
                    # Plain reads only need the value cached by _apply
                    self.publish(name, lambda value: True)
                except SettingNotFoundError:
                    if default is None:
                        raise
                    return default
                self._read_defaults[name] = default
            elif default is not None and name in self._read_defaults:
                self._read_defaults[name] = default
            value = self._values.get(name)
        return default if value is None else value

    def _apply(self, name: str, value: str | None, setter: SettingSetter) -> bool:
        applied = bool(setter(value))
        if applied:
            self._values[name] = value
        return applied

    def _ensure_listening(self) -> None:
        if not self._listening:
            self._platform.on_config_changed(self.handle_changes)
            self._listening = True

    # -------------------------------------------------------------------------
    # Change notifications
    # -------------------------------------------------------------------------

    def handle_changes(self, changes: Sequence[PlatformChange]) -> bool:
        """Re-apply every subscribed setting named in a change notification.

        Changes that are not setting changes, or that name a setting nobody
        subscribed to, are ignored. If any re-apply fails, exactly one recycle
        is requested for this notification.

        Returns:
            True if every matching setting was re-applied
        """
        names = []
        for change in changes:
            if isinstance(change, ConfigurationSettingChange) and change.setting_name not in names:
                names.append(change.setting_name)

        failed: list[str] = []
        with self._lock:
            for name in names:
                setter = self._subscriptions.get(name)
                if setter is None:
                    continue
                if not self._reapply(name, setter):
                    failed.append(name)

        if not failed:
            return True

        logger.error(
            f"[ConfigBridge] Could not apply changed settings {failed}, requesting recycle"
        )
        RECYCLE_REQUESTS.inc()
        self._platform.request_recycle()
        return False

    def _reapply(self, name: str, setter: SettingSetter) -> bool:
        try:
            value = self._source.resolve(name)
            applied = self._apply(name, value, setter)
        except SettingNotFoundError:
            applied = self._forget_removed(name)
        except Exception as e:
            logger.error(f"[ConfigBridge] Re-applying {name} raised {type(e).__name__}: {e}")
            applied = False

        CONFIG_CHANGES_APPLIED.labels(outcome="applied" if applied else "failed").inc()
        if applied:
            logger.info(f"[ConfigBridge] Applied new value of {name}")
        return applied

    def _forget_removed(self, name: str) -> bool:
        # Only plain reads that carry a default survive removal of the setting
        if self._read_defaults.get(name) is None:
            logger.error(f"[ConfigBridge] Setting {name} was removed from the platform")
            return False
        self._values.pop(name, None)
        logger.info(
            f"[ConfigBridge] Setting {name} was removed, reads fall back to "
            f"{self._read_defaults[name]!r}"
        )
        return True


__all__ = [
    "ConfigurationBridge",
    "LocalSettingSource",
    "PlatformSettingSource",
    "SettingSetter",
    "SettingSource",
]
