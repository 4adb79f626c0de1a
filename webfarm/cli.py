"""Launch a web farm role instance.

Runs the full lifecycle: on_start(), then run() until SIGTERM/SIGINT, which
triggers on_stop() (drain) on a helper thread. SIGHUP reloads the service
configuration file and applies changed settings live.

Usage:
    webfarm-role \\
        --service-config /etc/webfarm/service.yaml \\
        --sync-factory mysync.service:SyncService \\
        --worker-factory mysync.worker:BackgroundWorkerService

Environment variables:
    WEBFARM_INSTANCE_ID: Instance id (presence means "running on the platform")
    WEBFARM_APP_SETTINGS: Local app settings YAML used off-platform
    WEBFARM_ROLE_*: Role tunables, see webfarm.config.base_config
"""

from __future__ import annotations

import argparse
import importlib
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Any

from webfarm.config.base_config import RoleConfig
from webfarm.config.local_store import LocalSettingsStore
from webfarm.coordination.role import WebFarmRole
from webfarm.platform.environment import EnvironmentPlatform
from webfarm.utils.exceptions import IMPORT_ERRORS, PARSE_ERRORS, CollaboratorLoadError

logger = logging.getLogger(__name__)


def load_factory(spec: str) -> Any:
    """Import a factory given as ``package.module:attribute``.

    Raises:
        CollaboratorLoadError: If the path is malformed or cannot be imported
    """
    module_name, sep, attr_path = spec.partition(":")
    if not sep or not module_name or not attr_path:
        raise CollaboratorLoadError(f"Expected 'module:attribute', got {spec!r}")

    try:
        target: Any = importlib.import_module(module_name)
        for attr in attr_path.split("."):
            target = getattr(target, attr)
    except IMPORT_ERRORS as e:
        raise CollaboratorLoadError(f"Cannot load {spec}: {e}") from e

    if not callable(target):
        raise CollaboratorLoadError(f"{spec} is not callable")
    return target


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Run a web farm role instance",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--service-config",
        type=Path,
        required=True,
        help="Service configuration YAML (settings, local resources, instance id)",
    )
    parser.add_argument(
        "--app-settings",
        type=Path,
        default=None,
        help="Local app settings YAML used when the platform is unavailable",
    )
    parser.add_argument(
        "--sync-factory",
        required=True,
        help="Synchronization service factory as module:attribute",
    )
    parser.add_argument(
        "--worker-factory",
        required=True,
        help="Background worker service factory as module:attribute",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(argv)


def install_signal_handlers(role: WebFarmRole, platform: EnvironmentPlatform) -> None:
    """Route stop signals to on_stop() and SIGHUP to a configuration reload."""

    def handle_stop(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, draining")
        threading.Thread(target=role.on_stop, name="webfarm-stop", daemon=True).start()

    def handle_reload(signum, frame):
        logger.info("Received SIGHUP, reloading service configuration")
        try:
            platform.reload()
        except (OSError, *PARSE_ERRORS) as e:
            logger.error(f"Service configuration reload failed: {e}")

    signal.signal(signal.SIGTERM, handle_stop)
    signal.signal(signal.SIGINT, handle_stop)
    if hasattr(signal, "SIGHUP"):
        signal.signal(signal.SIGHUP, handle_reload)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("aiohttp").setLevel(logging.WARNING)

    try:
        sync_factory = load_factory(args.sync_factory)
        worker_factory = load_factory(args.worker_factory)
        platform = EnvironmentPlatform.from_file(args.service_config)
    except (CollaboratorLoadError, OSError, *PARSE_ERRORS) as e:
        logger.error(f"Cannot launch role: {e}")
        return 2

    config = RoleConfig.from_env()
    if args.app_settings is not None:
        config.app_settings_path = args.app_settings
    logger.info(f"Role config: {config.to_dict()}")

    role = WebFarmRole(
        platform,
        sync_factory=sync_factory,
        worker_factory=worker_factory,
        config=config,
        local_store=LocalSettingsStore.load(config.app_settings_path),
    )
    install_signal_handlers(role, platform)

    try:
        role.on_start()
        role.run()
    except Exception as e:
        logger.error(f"Role failed ({type(e).__name__}): {e}")
        return 1

    logger.info(f"Role stopped ({role.state.value})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
