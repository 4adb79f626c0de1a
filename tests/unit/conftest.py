"""Shared pytest fixtures for web farm role tests.

Provides in-memory fakes for the host platform, the sync service and the
background worker, plus factories that record what the role constructed.
"""

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest

from webfarm.coordination.services import LifecycleEvent
from webfarm.platform.base import (
    ConfigurationSettingChange,
    LocalResourceNotFoundError,
    SettingNotFoundError,
)

# =============================================================================
# FAKE COLLABORATORS
# =============================================================================


class FakePlatform:
    """In-memory HostPlatform.

    request_counts is consumed one value per sample; the last value repeats.
    Every sample is appended to call_log as ("sample", value).
    """

    def __init__(
        self,
        available: bool = True,
        emulated: bool = False,
        settings: dict[str, str] | None = None,
        resources: dict[str, str] | None = None,
        instance_id: str = "WebFarm_IN_0",
        request_counts: Sequence[float] = (0,),
        call_log: list | None = None,
    ):
        self.available = available
        self.emulated = emulated
        self.settings = dict(settings or {})
        self.resources = dict(resources or {})
        self.instance_id = instance_id
        self.request_counts = list(request_counts)
        self.call_log = call_log if call_log is not None else []
        self.listeners: list[Callable] = []
        self.recycle_requests = 0
        self.samples = 0

    def is_available(self) -> bool:
        return self.available

    def is_emulated(self) -> bool:
        return self.emulated

    def get_config_value(self, name: str) -> str:
        if name not in self.settings:
            raise SettingNotFoundError(name)
        return self.settings[name]

    def on_config_changed(self, callback) -> None:
        self.listeners.append(callback)

    def request_recycle(self) -> None:
        self.recycle_requests += 1

    def get_local_resource_root(self, logical_name: str) -> str:
        if logical_name not in self.resources:
            raise LocalResourceNotFoundError(logical_name)
        return self.resources[logical_name]

    def get_current_instance_id(self) -> str:
        return self.instance_id

    def get_live_request_count(self) -> float:
        index = min(self.samples, len(self.request_counts) - 1)
        value = self.request_counts[index]
        self.samples += 1
        self.call_log.append(("sample", value))
        return value

    # Test helpers

    def change_setting(self, name: str, value: str) -> None:
        """Edit a setting and deliver the change notification."""
        self.settings[name] = value
        self.notify(name)

    def notify(self, *names: str) -> None:
        changes = [ConfigurationSettingChange(name) for name in names]
        for listener in list(self.listeners):
            listener(changes)


class FakeSyncService:
    def __init__(
        self,
        sites_path: str,
        temp_path: str,
        excluded_dirs: Sequence[str],
        storage_connection_key: str,
        is_sync_enabled: Callable[[], bool],
        call_log: list | None = None,
    ):
        self.sites_path = sites_path
        self.temp_path = temp_path
        self.excluded_dirs = list(excluded_dirs)
        self.storage_connection_key = storage_connection_key
        self.is_sync_enabled = is_sync_enabled
        self.call_log = call_log if call_log is not None else []
        self.listeners: list[Callable[[LifecycleEvent], None]] = []
        self.started = False
        self.get_interval: Callable[[], float] | None = None
        self.sync_status_updates: list[tuple[str, bool]] = []

    def start(self) -> None:
        self.started = True
        self.call_log.append(("sync_start",))

    def sync_forever(self, get_interval: Callable[[], float]) -> None:
        self.get_interval = get_interval
        self.call_log.append(("sync_forever",))

    def update_all_sites_sync_status(self, instance_id: str, is_active: bool) -> None:
        self.sync_status_updates.append((instance_id, is_active))
        self.call_log.append(("sync_status", instance_id, is_active))

    def add_listener(self, listener) -> None:
        self.listeners.append(listener)

    def emit(self, event: LifecycleEvent) -> None:
        for listener in self.listeners:
            listener(event)


class FakeWorker:
    def __init__(self, sites_path: str = "", execution_path: str = ""):
        self.sites_path = sites_path
        self.execution_path = execution_path
        self.calls: list[tuple[Any, ...]] = []

    def ping(self) -> None:
        self.calls.append(("ping",))

    def update(self, site_name: str) -> None:
        self.calls.append(("update", site_name))

    def dispose_site(self, site_name: str) -> None:
        self.calls.append(("dispose_site", site_name))


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def call_log() -> list:
    """Ordered record of calls across fakes sharing it."""
    return []


@pytest.fixture
def resource_dirs(tmp_path: Path) -> dict[str, str]:
    """Local resource roots for Sites, TempSites and Execution.

    Returned with a trailing separator, the way the platform reports them.
    """
    roots = {}
    for name in ("Sites", "TempSites", "Execution"):
        path = tmp_path / "resources" / name
        path.mkdir(parents=True)
        roots[name] = f"{path}/"
    return roots


@pytest.fixture
def platform(resource_dirs, call_log) -> FakePlatform:
    return FakePlatform(
        settings={
            "SyncEnabled": "true",
            "SyncIntervalInSeconds": "30",
            "StorageConnectionString": "UseDevelopmentStorage=true",
        },
        resources=resource_dirs,
        call_log=call_log,
    )


@pytest.fixture
def created(call_log) -> dict[str, Any]:
    """Collaborators built by the factories, keyed "sync" and "worker"."""
    return {}


@pytest.fixture
def sync_factory(created, call_log):
    def factory(sites_path, temp_path, excluded_dirs, storage_connection_key, is_sync_enabled):
        service = FakeSyncService(
            sites_path,
            temp_path,
            excluded_dirs,
            storage_connection_key,
            is_sync_enabled,
            call_log=call_log,
        )
        created["sync"] = service
        return service

    return factory


@pytest.fixture
def worker_factory(created):
    def factory(sites_path, execution_path):
        worker = FakeWorker(sites_path, execution_path)
        created["worker"] = worker
        return worker

    return factory
