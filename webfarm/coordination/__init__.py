"""Lifecycle coordination: the role controller, event bridge and drain."""

from __future__ import annotations

from webfarm.coordination.drain import DrainProcedure, DrainResult
from webfarm.coordination.event_bridge import EventBridge
from webfarm.coordination.role import RoleState, WebFarmRole
from webfarm.coordination.services import (
    BackgroundWorkerService,
    LifecycleEvent,
    Ping,
    SiteDeleted,
    SiteUpdated,
    SyncService,
)

__all__ = [
    "BackgroundWorkerService",
    "DrainProcedure",
    "DrainResult",
    "EventBridge",
    "LifecycleEvent",
    "Ping",
    "RoleState",
    "SiteDeleted",
    "SiteUpdated",
    "SyncService",
    "WebFarmRole",
]
