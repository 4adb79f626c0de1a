"""Host platform backed by a YAML service configuration file.

Used when the role runs under a plain process supervisor (systemd, a
container runtime) instead of a managed cloud fabric. The service
configuration file plays the part of the platform's configuration store, and
``reload()`` turns edits to it into change notifications.

Service configuration format:

    instance_id: webfarm-0          # omit to run "outside the platform"
    emulated: false
    settings:
      SyncEnabled: "true"
      SyncIntervalInSeconds: "15"
      StorageConnectionString: "..."
    local_resources:                # explicit roots per logical name
      Sites: /srv/webfarm/sites
    local_resources_root: /srv/webfarm   # fallback: <root>/<logical name>

Usage:
    from webfarm.platform.environment import EnvironmentPlatform

    platform = EnvironmentPlatform.from_file(Path("/etc/webfarm/service.yaml"))
    platform.on_config_changed(lambda changes: print(changes))
    platform.reload()  # after editing the file

Environment variables:
    WEBFARM_INSTANCE_ID: Overrides instance_id from the file
    WEBFARM_EMULATED: Overrides emulated from the file
"""

from __future__ import annotations

import logging
import os
import signal
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

from webfarm.platform.base import (
    ChangeCallback,
    ConfigurationSettingChange,
    LocalResourceNotFoundError,
    SettingNotFoundError,
)

logger = logging.getLogger(__name__)


def _terminate_self() -> None:
    """Default recycle action: SIGTERM ourselves so the supervisor restarts us."""
    os.kill(os.getpid(), signal.SIGTERM)


def load_service_config(path: Path) -> dict[str, Any]:
    """Load a service configuration YAML file.

    Raises:
        FileNotFoundError: If the file does not exist
        yaml.YAMLError: If the file is not valid YAML
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Service configuration must be a mapping: {path}")
    return data


class EnvironmentPlatform:
    """HostPlatform implementation driven by a service configuration mapping."""

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        config_path: Path | None = None,
        request_counter: Callable[[], float] | None = None,
        recycle_action: Callable[[], None] | None = None,
    ):
        """Initialize the platform.

        Args:
            config: Parsed service configuration
            config_path: File the configuration came from (enables reload())
            request_counter: Returns the current in-flight request count.
                             Defaults to always 0 (nothing to drain).
            recycle_action: Invoked on request_recycle(). Defaults to sending
                            SIGTERM to this process.
        """
        self._config_path = config_path
        self._request_counter = request_counter
        self._recycle_action = recycle_action or _terminate_self
        self._listeners: list[ChangeCallback] = []
        self._lock = threading.Lock()
        self._config: dict[str, Any] = {}
        self._apply_config(config or {})

    @classmethod
    def from_file(cls, path: Path, **kwargs: Any) -> EnvironmentPlatform:
        return cls(load_service_config(path), config_path=path, **kwargs)

    def _apply_config(self, config: dict[str, Any]) -> None:
        self._config = config
        self._settings: dict[str, str] = {
            str(k): "" if v is None else str(v)
            for k, v in (config.get("settings") or {}).items()
        }
        self._instance_id = os.environ.get("WEBFARM_INSTANCE_ID") or config.get("instance_id")
        emulated_env = os.environ.get("WEBFARM_EMULATED")
        if emulated_env is not None:
            self._emulated = emulated_env.strip().lower() in ("true", "1", "yes", "on")
        else:
            self._emulated = bool(config.get("emulated", False))

    # -------------------------------------------------------------------------
    # HostPlatform
    # -------------------------------------------------------------------------

    def is_available(self) -> bool:
        return bool(self._instance_id)

    def is_emulated(self) -> bool:
        return self._emulated

    def get_config_value(self, name: str) -> str:
        with self._lock:
            if name not in self._settings:
                raise SettingNotFoundError(name)
            return self._settings[name]

    def on_config_changed(self, callback: ChangeCallback) -> None:
        with self._lock:
            self._listeners.append(callback)

    def request_recycle(self) -> None:
        logger.warning(f"[EnvironmentPlatform] Recycle requested for {self._instance_id}")
        self._recycle_action()

    def get_local_resource_root(self, logical_name: str) -> str:
        explicit = (self._config.get("local_resources") or {}).get(logical_name)
        if explicit:
            Path(explicit).mkdir(parents=True, exist_ok=True)
            return str(explicit)

        root = self._config.get("local_resources_root")
        if not root:
            raise LocalResourceNotFoundError(logical_name)

        path = Path(root) / logical_name
        path.mkdir(parents=True, exist_ok=True)
        # Keep the trailing separator like managed platforms do; callers strip it
        return f"{path}{os.sep}"

    def get_current_instance_id(self) -> str:
        if not self._instance_id:
            raise RuntimeError("Platform is not available: no instance id")
        return str(self._instance_id)

    def get_live_request_count(self) -> float:
        if self._request_counter is None:
            return 0
        return self._request_counter()

    # -------------------------------------------------------------------------
    # Change notifications
    # -------------------------------------------------------------------------

    def reload(self) -> list[ConfigurationSettingChange]:
        """Re-read the service configuration file and notify listeners.

        Only settings whose value was added, edited or removed are reported.

        Returns:
            The changes delivered to listeners
        """
        if self._config_path is None:
            raise RuntimeError("reload() requires a platform created from a file")

        new_config = load_service_config(self._config_path)
        with self._lock:
            old_settings = dict(self._settings)
            self._apply_config(new_config)
            new_settings = dict(self._settings)

        changed = sorted(
            name
            for name in set(old_settings) | set(new_settings)
            if old_settings.get(name) != new_settings.get(name)
        )
        changes = [ConfigurationSettingChange(name) for name in changed]
        if not changes:
            logger.info("[EnvironmentPlatform] Reloaded service configuration: no changes")
            return changes

        logger.info(f"[EnvironmentPlatform] Settings changed: {changed}")
        self.notify(changes)
        return changes

    def notify(self, changes: list[ConfigurationSettingChange]) -> None:
        """Deliver a change notification to every registered listener."""
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(changes)


__all__ = [
    "EnvironmentPlatform",
    "load_service_config",
]
