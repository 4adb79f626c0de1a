"""Web farm role: lifecycle orchestration for a web farm node.

Usage:
    from webfarm import WebFarmRole, EnvironmentPlatform

    platform = EnvironmentPlatform.from_file(Path("service.yaml"))
    role = WebFarmRole(platform, sync_factory=..., worker_factory=...)
    role.on_start()
    role.run()
"""

from __future__ import annotations

from webfarm.coordination.role import RoleState, WebFarmRole
from webfarm.platform.environment import EnvironmentPlatform
from webfarm.utils.http import create_connector

__version__ = "1.0.0"

__all__ = [
    "EnvironmentPlatform",
    "RoleState",
    "WebFarmRole",
    "create_connector",
    "__version__",
]
