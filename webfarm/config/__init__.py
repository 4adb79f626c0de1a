"""Configuration for the web farm role.

Modules:
    base_config: Environment-driven role tunables (RoleConfig)
    local_store: Local app settings YAML, the off-platform fallback
    dynamic_config: ConfigurationBridge, the single path for setting reads
    role_settings: Well-known setting names and typed accessors
"""

from __future__ import annotations

from webfarm.config.base_config import RoleConfig
from webfarm.config.dynamic_config import ConfigurationBridge
from webfarm.config.local_store import LocalSettingsStore
from webfarm.config.role_settings import RoleSettings

__all__ = [
    "ConfigurationBridge",
    "LocalSettingsStore",
    "RoleConfig",
    "RoleSettings",
]
