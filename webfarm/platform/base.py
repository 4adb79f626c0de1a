"""Host platform interface consumed by the role.

The host platform is the managed environment the role runs in. It hands out
local storage directories, service configuration values and change
notifications, the instance identity, and the live request count used to
drain traffic on shutdown. It can also be asked to recycle (restart) the
instance.

Any object with these methods is a platform; ``EnvironmentPlatform`` in
``webfarm.platform.environment`` is the concrete implementation used by the
CLI.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol, Union, runtime_checkable

from webfarm.utils.exceptions import WebFarmError


class LocalResourceNotFoundError(WebFarmError, LookupError):
    """Raised when the platform has no local resource with the given name.

    A missing local resource definition is a deployment configuration error,
    never a transient fault; callers must not retry.
    """

    def __init__(self, logical_name: str):
        super().__init__(f"Local resource not found: {logical_name}")
        self.logical_name = logical_name


class SettingNotFoundError(WebFarmError, LookupError):
    """Raised when the platform does not define a configuration setting."""

    def __init__(self, name: str):
        super().__init__(f"Configuration setting not found: {name}")
        self.name = name


@dataclass(frozen=True)
class ConfigurationSettingChange:
    """A configuration setting was edited on the platform."""

    setting_name: str


@dataclass(frozen=True)
class TopologyChange:
    """The set of instances of a role changed."""

    role_name: str


PlatformChange = Union[ConfigurationSettingChange, TopologyChange]
ChangeCallback = Callable[[Sequence[PlatformChange]], None]


@runtime_checkable
class HostPlatform(Protocol):
    """Structural interface of the host platform."""

    def is_available(self) -> bool:
        """Whether the role is running inside the managed platform."""
        ...

    def is_emulated(self) -> bool:
        """Whether the platform is a local emulator."""
        ...

    def get_config_value(self, name: str) -> str:
        """Return a service configuration value, or raise SettingNotFoundError."""
        ...

    def on_config_changed(self, callback: ChangeCallback) -> None:
        """Register a callback for configuration change notifications."""
        ...

    def request_recycle(self) -> None:
        """Ask the platform to restart this instance."""
        ...

    def get_local_resource_root(self, logical_name: str) -> str:
        """Return the root directory of a local resource.

        Raises:
            LocalResourceNotFoundError: If no resource has this name
        """
        ...

    def get_current_instance_id(self) -> str:
        ...

    def get_live_request_count(self) -> float:
        ...


__all__ = [
    "ChangeCallback",
    "ConfigurationSettingChange",
    "HostPlatform",
    "LocalResourceNotFoundError",
    "PlatformChange",
    "SettingNotFoundError",
    "TopologyChange",
]
