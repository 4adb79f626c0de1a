"""Local app settings store.

Fallback source of configuration values when the role runs outside the
managed platform (developer machines, integration tests). Values come from
the ``app_settings`` mapping of a YAML file and can be overridden per setting
with ``WEBFARM_SETTING_<Name>`` environment variables.

File format:

    app_settings:
      SyncEnabled: "true"
      SyncIntervalInSeconds: "15"
      StorageConnectionString: "UseDevelopmentStorage=true"
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from webfarm.utils.exceptions import FS_ERRORS, PARSE_ERRORS

logger = logging.getLogger(__name__)

ENV_OVERRIDE_PREFIX = "WEBFARM_SETTING_"


def _default_search_paths() -> list[Path]:
    paths = [
        Path.cwd() / "config" / "app_settings.yaml",
        Path(__file__).parent.parent.parent / "config" / "app_settings.yaml",
    ]
    env_path = os.environ.get("WEBFARM_APP_SETTINGS")
    if env_path:
        paths.insert(0, Path(env_path))
    return paths


class LocalSettingsStore:
    """Read-only view over the local app settings file."""

    def __init__(self, settings: dict[str, Any] | None = None, source: Path | None = None):
        self._settings = {
            str(k): "" if v is None else str(v) for k, v in (settings or {}).items()
        }
        self.source = source

    @classmethod
    def load(cls, path: Path | None = None) -> LocalSettingsStore:
        """Load the store from path, or from the first existing search path.

        A missing file yields an empty store; a malformed one is logged and
        skipped so the next candidate can be tried.
        """
        candidates = [path] if path is not None else _default_search_paths()
        for candidate in candidates:
            if not candidate.exists():
                continue
            try:
                with open(candidate) as f:
                    data = yaml.safe_load(f) or {}
                return cls(data.get("app_settings") or {}, source=candidate)
            except (*FS_ERRORS, *PARSE_ERRORS, AttributeError) as e:
                logger.warning(f"[LocalSettings] Failed to load {candidate}: {e}")
                continue

        logger.info("[LocalSettings] No app settings file found, using environment only")
        return cls()

    def get(self, name: str) -> str | None:
        """Return the setting value, or None when it is not defined."""
        override = os.environ.get(f"{ENV_OVERRIDE_PREFIX}{name}")
        if override is not None:
            return override
        return self._settings.get(name)

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None


__all__ = [
    "ENV_OVERRIDE_PREFIX",
    "LocalSettingsStore",
]
