"""Role Lifecycle Controller for a web farm node.

Brings a node from "not serving" to "serving", keeps the sync service and
the background worker coordinated while it runs, and drains live traffic
before it stops.

State machine (forward only):

    NOT_STARTED --on_start()--> STARTING --run()--> RUNNING
                                    |                  |
                                    +---on_stop()------+--> STOPPING --> STOPPED

Failures during start or run are never retried: they are logged, persisted
through the diagnostics sink and re-raised so that the host recycles the
node.

Usage:
    from webfarm.coordination.role import WebFarmRole

    role = WebFarmRole(platform, sync_factory=SyncService, worker_factory=Worker)
    role.on_start()
    role.run()        # blocks until on_stop() has drained the node

    # from the host's stop handler, on another thread:
    role.on_stop()
"""

from __future__ import annotations

import logging
import os
import socket
import tempfile
import threading
import traceback
from enum import Enum

from webfarm.config.base_config import RoleConfig
from webfarm.config.dynamic_config import ConfigurationBridge
from webfarm.config.local_store import LocalSettingsStore
from webfarm.config.role_settings import RoleSettings
from webfarm.coordination.drain import DrainProcedure, DrainResult
from webfarm.coordination.event_bridge import EventBridge
from webfarm.coordination.services import (
    BackgroundWorkerService,
    SyncService,
    SyncServiceFactory,
    WorkerServiceFactory,
)
from webfarm.metrics import ROLE_STATE
from webfarm.monitoring.diagnostics import DiagnosticsSink
from webfarm.platform.base import HostPlatform
from webfarm.platform.resources import LocalResourceProvisioner
from webfarm.utils.exceptions import RoleStateError
from webfarm.utils.http import set_connection_limit

logger = logging.getLogger(__name__)

SITES_RESOURCE = "Sites"
TEMP_SITES_RESOURCE = "TempSites"
EXECUTION_RESOURCE = "Execution"

TEMP_ENV_VARS = ("TMP", "TEMP", "TMPDIR")


class RoleState(str, Enum):
    """Lifecycle states of the role."""

    NOT_STARTED = "not_started"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


_ALLOWED_TRANSITIONS: dict[RoleState, frozenset[RoleState]] = {
    RoleState.NOT_STARTED: frozenset({RoleState.STARTING}),
    RoleState.STARTING: frozenset({RoleState.RUNNING, RoleState.STOPPING}),
    RoleState.RUNNING: frozenset({RoleState.STOPPING}),
    RoleState.STOPPING: frozenset({RoleState.STOPPED}),
    RoleState.STOPPED: frozenset(),
}


def redirect_temp_dirs(path: str) -> None:
    """Point every process-wide temporary directory at path.

    Large package operations can exceed the small default temp quota and fail
    with "disk full", so temp storage moves to a larger local resource before
    any large I/O starts.
    """
    for var in TEMP_ENV_VARS:
        os.environ[var] = path
    tempfile.tempdir = path


class WebFarmRole:
    """Start/Run/Stop orchestration of a web farm node."""

    def __init__(
        self,
        platform: HostPlatform,
        sync_factory: SyncServiceFactory,
        worker_factory: WorkerServiceFactory,
        config: RoleConfig | None = None,
        local_store: LocalSettingsStore | None = None,
        diagnostics: DiagnosticsSink | None = None,
        provisioner: LocalResourceProvisioner | None = None,
        drain: DrainProcedure | None = None,
    ):
        """Initialize the controller. Nothing is touched until on_start().

        Args:
            platform: Host platform
            sync_factory: Builds the sync service from
                (sites_path, temp_path, excluded_dirs, storage_connection_key,
                is_sync_enabled)
            worker_factory: Builds the background worker from
                (sites_path, execution_path)
            config: Role tunables (defaults from environment)
            local_store: Settings fallback when the platform is unavailable
            diagnostics: Diagnostics sink (defaults to config.diagnostics_dir)
            provisioner: Local resource provisioner
            drain: Drain-on-stop procedure
        """
        self._platform = platform
        self._sync_factory = sync_factory
        self._worker_factory = worker_factory
        self._config = config or RoleConfig.from_env()
        self._local_store = local_store
        self._diagnostics = diagnostics or DiagnosticsSink(self._config.diagnostics_dir)
        self._provisioner = provisioner or LocalResourceProvisioner(platform)
        self._drain = drain or DrainProcedure(
            platform,
            poll_interval_seconds=self._config.drain_poll_interval_seconds,
            max_drain_seconds=self._config.drain_budget_seconds,
        )

        self._state = RoleState.NOT_STARTED
        self._state_lock = threading.Lock()
        self._start_completed = False
        self._start_finished = False
        self._stop_requested = False
        self._shutdown = threading.Event()

        self._bridge: ConfigurationBridge | None = None
        self._settings: RoleSettings | None = None
        self._sync_service: SyncService | None = None
        self._worker: BackgroundWorkerService | None = None
        self._event_bridge: EventBridge | None = None
        self.last_drain: DrainResult | None = None

        _record_state(self._state)

    @property
    def state(self) -> RoleState:
        with self._state_lock:
            return self._state

    @property
    def config_bridge(self) -> ConfigurationBridge | None:
        return self._bridge

    @property
    def settings(self) -> RoleSettings | None:
        return self._settings

    @property
    def sync_service(self) -> SyncService | None:
        return self._sync_service

    @property
    def worker(self) -> BackgroundWorkerService | None:
        return self._worker

    def _transition(self, target: RoleState) -> None:
        with self._state_lock:
            self._transition_locked(target)
        _record_state(target)

    def _transition_locked(self, target: RoleState) -> None:
        if target not in _ALLOWED_TRANSITIONS[self._state]:
            raise RoleStateError(
                f"Illegal role transition {self._state.value} -> {target.value}"
            )
        logger.debug(f"[WebFarmRole] {self._state.value} -> {target.value}")
        self._state = target

    def _record_failure(self, exc: BaseException) -> None:
        self._diagnostics.log_error(traceback.format_exc())
        self._diagnostics.persist_exception(exc)

    # =========================================================================
    # Start
    # =========================================================================

    def on_start(self) -> None:
        """Bring the node to the point where it can serve.

        A stop requested while start is in progress is deferred: once start
        completes, the node drains here before on_start() returns.

        Raises:
            Exception: Whatever failed, after it was logged and persisted
        """
        try:
            self._transition(RoleState.STARTING)
        except RoleStateError as e:
            self._record_failure(e)
            raise

        self._diagnostics.log_info("OnStart")
        try:
            self._start()
        except Exception as e:
            with self._state_lock:
                self._start_finished = True
                stop_pending = self._stop_requested
            self._record_failure(e)
            if stop_pending:
                self._shutdown.set()
            raise

        with self._state_lock:
            self._start_completed = True
            self._start_finished = True
            stop_pending = self._stop_requested

        if stop_pending:
            logger.info("[WebFarmRole] Stop was requested during start, draining now")
            self._stop()

    def _start(self) -> None:
        set_connection_limit(self._config.connection_limit)

        self._bridge = ConfigurationBridge(self._platform, self._local_store)
        self._settings = RoleSettings(self._bridge)

        if self._platform.is_available() and not self._platform.is_emulated():
            self._diagnostics.configure_monitor(self._config.metrics_port)

        sites = self._provisioner.acquire(SITES_RESOURCE)
        temp_sites = self._provisioner.acquire(TEMP_SITES_RESOURCE)
        execution = self._provisioner.acquire(EXECUTION_RESOURCE)

        redirect_temp_dirs(temp_sites.root_path)

        self._sync_service = self._sync_factory(
            sites.root_path,
            temp_sites.root_path,
            list(self._settings.excluded_directories),
            self._settings.storage_connection_key,
            self._settings.is_sync_enabled,
        )
        self._worker = self._worker_factory(sites.root_path, execution.root_path)

        self._event_bridge = EventBridge(self._worker)
        self._event_bridge.wire(self._sync_service)

        # Initial sync so sites are in place before traffic arrives
        self._sync_service.start()

    # =========================================================================
    # Run
    # =========================================================================

    def run(self) -> None:
        """Supervise the running node.

        Hands periodic syncing to the sync service and idles until on_stop()
        has drained the node (or request_shutdown() is called). Under normal
        operation this never returns before stop. If a stop was already
        requested, RUNNING is never entered: run() waits for the drain to
        finish and returns.

        Raises:
            RoleStateError: If on_start() did not complete
            Exception: Whatever escaped the loop, after it was logged and persisted
        """
        try:
            with self._state_lock:
                if not self._start_completed:
                    raise RoleStateError(f"Cannot run from state {self._state.value}")
                stop_pending = self._stop_requested
                if not stop_pending:
                    self._transition_locked(RoleState.RUNNING)
        except RoleStateError as e:
            self._record_failure(e)
            raise

        if stop_pending:
            logger.info("[WebFarmRole] Stop already requested, not entering running")
            self._shutdown.wait()
            return
        _record_state(RoleState.RUNNING)

        try:
            self._diagnostics.log_info("Run")
            self._sync_service.sync_forever(self._settings.sync_interval)
            while not self._shutdown.wait(self._config.idle_interval_seconds):
                pass
        except Exception as e:
            self._record_failure(e)
            raise

        logger.info("[WebFarmRole] Run loop exited on shutdown signal")

    def request_shutdown(self) -> None:
        """Let run() return without draining."""
        self._shutdown.set()

    # =========================================================================
    # Stop
    # =========================================================================

    def on_stop(self) -> DrainResult | None:
        """Withdraw from syncing and drain in-flight requests.

        Blocks the calling thread until the live request count reaches zero
        (or the configured drain budget runs out). Only the first call acts;
        later or concurrent calls return None. A stop that arrives before start
        has completed is handed to on_start(), which drains once start is done.

        Returns:
            The drain result, or None if this call did not drain
        """
        self._diagnostics.log_info("OnStop")
        with self._state_lock:
            state = self._state
            if self._stop_requested:
                logger.warning(
                    f"[WebFarmRole] on_stop() ignored, stop already requested ({state.value})"
                )
                return None
            self._stop_requested = True
            started = self._start_completed
            start_failed = self._start_finished and not started

        if start_failed:
            logger.warning(f"[WebFarmRole] on_stop() after a failed start ({state.value})")
            self._shutdown.set()
            return None
        if not started:
            logger.warning(
                f"[WebFarmRole] on_stop() before start completed ({state.value}), "
                "draining once start finishes"
            )
            return None

        return self._stop()

    def _stop(self) -> DrainResult:
        try:
            self._transition(RoleState.STOPPING)
            self.last_drain = self._drain.execute(self._sync_service, self._instance_id())
            return self.last_drain
        except Exception as e:
            self._record_failure(e)
            raise
        finally:
            if self.state == RoleState.STOPPING:
                self._transition(RoleState.STOPPED)
            self._shutdown.set()

    def _instance_id(self) -> str:
        if self._platform.is_available():
            return self._platform.get_current_instance_id()
        return socket.gethostname()


def _record_state(current: RoleState) -> None:
    for state in RoleState:
        ROLE_STATE.labels(state=state.value).set(1 if state == current else 0)


__all__ = [
    "EXECUTION_RESOURCE",
    "RoleState",
    "SITES_RESOURCE",
    "TEMP_SITES_RESOURCE",
    "WebFarmRole",
    "redirect_temp_dirs",
]
