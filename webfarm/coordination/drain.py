"""Drain-on-Stop procedure.

On stop the instance first withdraws from site synchronization, then blocks
until the platform reports no in-flight requests, so that no live request is
dropped by the shutdown.

The wait is unbounded by default: shutdown is held for as long as traffic
keeps arriving. ``max_drain_seconds`` caps it for deployments with a hard stop
deadline; a capped drain that runs out of budget returns with
``drained=False`` and lets shutdown proceed.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from webfarm.coordination.services import SyncService
from webfarm.metrics import DRAIN_REQUESTS_CURRENT, DRAIN_SAMPLES
from webfarm.platform.base import HostPlatform

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 1.0


@dataclass
class DrainResult:
    """Outcome of a drain.

    Attributes:
        samples: Number of request count samples taken
        drained: False only when max_drain_seconds ran out first
        elapsed_seconds: Time spent draining
    """

    samples: int
    drained: bool
    elapsed_seconds: float


class DrainProcedure:
    """Marks the instance not-synced and waits for in-flight requests."""

    def __init__(
        self,
        platform: HostPlatform,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        max_drain_seconds: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._platform = platform
        self._poll_interval = poll_interval_seconds
        self._max_drain_seconds = max_drain_seconds
        self._sleep = sleep
        self._clock = clock

    def execute(self, sync_service: SyncService | None, instance_id: str) -> DrainResult:
        """Run the drain.

        Args:
            sync_service: Told that this instance no longer syncs any site.
                None when the role never finished starting.
            instance_id: Identifier of this instance

        Returns:
            DrainResult describing the drain
        """
        if sync_service is not None:
            sync_service.update_all_sites_sync_status(instance_id, False)
            logger.info(f"[Drain] Marked all sites not synced for {instance_id}")

        started = self._clock()
        samples = 0
        while True:
            requests_current = self._platform.get_live_request_count()
            samples += 1
            DRAIN_SAMPLES.inc()
            DRAIN_REQUESTS_CURRENT.set(requests_current)
            logger.info(f"[Drain] Requests current = {requests_current}")

            elapsed = self._clock() - started
            if requests_current <= 0:
                return DrainResult(samples=samples, drained=True, elapsed_seconds=elapsed)

            if self._max_drain_seconds is not None and elapsed >= self._max_drain_seconds:
                logger.warning(
                    f"[Drain] Giving up after {elapsed:.1f}s with "
                    f"{requests_current} requests in flight"
                )
                return DrainResult(samples=samples, drained=False, elapsed_seconds=elapsed)

            self._sleep(self._poll_interval)


__all__ = [
    "DEFAULT_POLL_INTERVAL_SECONDS",
    "DrainProcedure",
    "DrainResult",
]
