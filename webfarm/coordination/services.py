"""Interfaces of the subsystems the role coordinates.

The Synchronization Service mirrors remote site definitions into local
storage and raises lifecycle events; the Background Worker Service runs
per-site worker processes. Both are supplied by the deployment through
factories, so the role only depends on the structural interfaces below.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol, Union, runtime_checkable

# =============================================================================
# Lifecycle Events
# =============================================================================


@dataclass(frozen=True)
class Ping:
    """Periodic liveness tick raised by the sync service."""


@dataclass(frozen=True)
class SiteUpdated:
    """A site's files were (re)synchronized."""

    site_name: str


@dataclass(frozen=True)
class SiteDeleted:
    """A site was removed from the farm."""

    site_name: str


LifecycleEvent = Union[Ping, SiteUpdated, SiteDeleted]
EventListener = Callable[[LifecycleEvent], None]


# =============================================================================
# Services
# =============================================================================


@runtime_checkable
class SyncService(Protocol):
    """Keeps local sites in step with remote storage.

    Outbound storage traffic must go through sessions built on
    webfarm.utils.http.create_connector() so the role's connection limit holds.
    """

    def start(self) -> None:
        """Run the initial synchronization pass."""
        ...

    def sync_forever(self, get_interval: Callable[[], float]) -> None:
        """Schedule periodic sync cycles and return immediately.

        get_interval is called before every cycle so interval changes apply
        without a restart.
        """
        ...

    def update_all_sites_sync_status(self, instance_id: str, is_active: bool) -> None:
        ...

    def add_listener(self, listener: EventListener) -> None:
        ...


@runtime_checkable
class BackgroundWorkerService(Protocol):
    def ping(self) -> None:
        ...

    def update(self, site_name: str) -> None:
        ...

    def dispose_site(self, site_name: str) -> None:
        ...


# (sites_path, temp_path, excluded_dirs, storage_connection_key, is_sync_enabled)
SyncServiceFactory = Callable[
    [str, str, Sequence[str], str, Callable[[], bool]],
    SyncService,
]

# (sites_path, execution_path)
WorkerServiceFactory = Callable[[str, str], BackgroundWorkerService]


__all__ = [
    "BackgroundWorkerService",
    "EventListener",
    "LifecycleEvent",
    "Ping",
    "SiteDeleted",
    "SiteUpdated",
    "SyncService",
    "SyncServiceFactory",
    "WorkerServiceFactory",
]
