"""Event Bridge between the sync service and the background worker.

Maps each sync service event to exactly one worker call, synchronously and in
arrival order:

    Ping               -> worker.ping()
    SiteUpdated(name)  -> worker.update(name)
    SiteDeleted(name)  -> worker.dispose_site(name)

Handlers run on whichever thread the sync service raises events from.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from webfarm.coordination.services import (
    BackgroundWorkerService,
    LifecycleEvent,
    Ping,
    SiteDeleted,
    SiteUpdated,
    SyncService,
)
from webfarm.metrics import LIFECYCLE_EVENTS_FORWARDED

logger = logging.getLogger(__name__)


class EventBridge:
    """Dispatch table from lifecycle events to worker actions."""

    def __init__(self, worker: BackgroundWorkerService):
        self._handlers: dict[type, Callable[[LifecycleEvent], None]] = {
            Ping: lambda event: worker.ping(),
            SiteUpdated: lambda event: worker.update(event.site_name),
            SiteDeleted: lambda event: worker.dispose_site(event.site_name),
        }

    def wire(self, sync_service: SyncService) -> None:
        """Subscribe the bridge to the sync service's events."""
        sync_service.add_listener(self.dispatch)
        logger.debug("[EventBridge] Wired sync service events to background worker")

    def dispatch(self, event: LifecycleEvent) -> None:
        """Forward one event to the worker.

        Raises:
            TypeError: If the event type has no handler
        """
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unsupported lifecycle event: {event!r}")

        handler(event)
        LIFECYCLE_EVENTS_FORWARDED.labels(event=type(event).__name__).inc()


__all__ = ["EventBridge"]
