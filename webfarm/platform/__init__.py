"""Host platform interface, the YAML-backed platform, and local resources."""

from __future__ import annotations

from webfarm.platform.base import (
    ConfigurationSettingChange,
    HostPlatform,
    LocalResourceNotFoundError,
    SettingNotFoundError,
    TopologyChange,
)
from webfarm.platform.environment import EnvironmentPlatform
from webfarm.platform.resources import LocalResourcePath, LocalResourceProvisioner

__all__ = [
    "ConfigurationSettingChange",
    "EnvironmentPlatform",
    "HostPlatform",
    "LocalResourceNotFoundError",
    "LocalResourcePath",
    "LocalResourceProvisioner",
    "SettingNotFoundError",
    "TopologyChange",
]
