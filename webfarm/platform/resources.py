"""Local resource provisioning.

Acquires platform-assigned local storage directories and opens them up to
every user, so that worker processes spawned under other accounts can read
and write them.

Usage:
    from webfarm.platform.resources import LocalResourceProvisioner

    provisioner = LocalResourceProvisioner(platform)
    sites = provisioner.acquire("Sites")
    print(sites.root_path)
"""

from __future__ import annotations

import logging
import os
import stat
import threading
from dataclasses import dataclass
from pathlib import Path

from webfarm.platform.base import HostPlatform, LocalResourceNotFoundError

logger = logging.getLogger(__name__)

# rwx for user, group and everyone else
FULL_CONTROL_BITS = stat.S_IRWXU | stat.S_IRWXG | stat.S_IRWXO


@dataclass(frozen=True)
class LocalResourcePath:
    """A platform-provisioned local directory.

    Attributes:
        name: Logical resource name (e.g. "Sites")
        root_path: Filesystem root, without trailing separators
    """

    name: str
    root_path: str

    @property
    def path(self) -> Path:
        return Path(self.root_path)

    def __str__(self) -> str:
        return self.root_path


def strip_trailing_separators(path: str) -> str:
    """Remove trailing path separators, keeping a bare filesystem root intact."""
    separators = os.sep + (os.altsep or "")
    stripped = path.rstrip(separators)
    return stripped or path[:1]


def grant_full_control(root: Path) -> None:
    """Grant full control to everyone on root and everything below it.

    Mode bits are added, never removed, so granting twice is harmless.
    """
    for path in [root, *root.rglob("*")]:
        if path.is_symlink():
            continue
        mode = stat.S_IMODE(path.stat().st_mode)
        if mode & FULL_CONTROL_BITS != FULL_CONTROL_BITS:
            path.chmod(mode | FULL_CONTROL_BITS)


class LocalResourceProvisioner:
    """Resolves local resources through the host platform and sets access."""

    def __init__(self, platform: HostPlatform):
        self._platform = platform
        self._acquired: dict[str, LocalResourcePath] = {}
        self._lock = threading.Lock()

    def acquire(self, logical_name: str) -> LocalResourcePath:
        """Resolve a local resource and grant everyone full control of it.

        Args:
            logical_name: Resource name as defined by the platform

        Returns:
            The resolved LocalResourcePath

        Raises:
            LocalResourceNotFoundError: If the platform does not define it or
                its root directory does not exist.
                Not retried: this is a deployment configuration error.
        """
        with self._lock:
            root = strip_trailing_separators(
                self._platform.get_local_resource_root(logical_name)
            )
            if not Path(root).is_dir():
                raise LocalResourceNotFoundError(logical_name)
            grant_full_control(Path(root))

            resource = LocalResourcePath(name=logical_name, root_path=root)
            previous = self._acquired.setdefault(logical_name, resource)
            if previous != resource:
                logger.warning(
                    f"[LocalResources] {logical_name} moved from "
                    f"{previous.root_path} to {root}"
                )
                self._acquired[logical_name] = resource

        logger.info(f"[LocalResources] Acquired {logical_name} at {root}")
        return resource

    def acquired(self) -> dict[str, LocalResourcePath]:
        """Resources acquired so far, keyed by logical name."""
        with self._lock:
            return dict(self._acquired)


__all__ = [
    "FULL_CONTROL_BITS",
    "LocalResourcePath",
    "LocalResourceProvisioner",
    "grant_full_control",
    "strip_trailing_separators",
]
