"""Prometheus metrics for the web farm role.

Centralises the gauges and counters the lifecycle controller, the
configuration bridge and the drain procedure record, so each component does
not have to manage its own metric instances.
"""

from __future__ import annotations

import logging
import threading
from typing import Final

from prometheus_client import Counter, Gauge

logger = logging.getLogger(__name__)

ROLE_STATE: Final[Gauge] = Gauge(
    "webfarm_role_state",
    "1 for the lifecycle state the role is currently in, 0 otherwise.",
    labelnames=("state",),
)

DRAIN_REQUESTS_CURRENT: Final[Gauge] = Gauge(
    "webfarm_drain_requests_current",
    "Last in-flight request count sampled while draining on stop.",
)

DRAIN_SAMPLES: Final[Counter] = Counter(
    "webfarm_drain_samples_total",
    "Number of in-flight request samples taken while draining.",
)

LIFECYCLE_EVENTS_FORWARDED: Final[Counter] = Counter(
    "webfarm_lifecycle_events_forwarded_total",
    "Sync service events forwarded to the background worker, by event type.",
    labelnames=("event",),
)

CONFIG_CHANGES_APPLIED: Final[Counter] = Counter(
    "webfarm_config_changes_applied_total",
    "Configuration change notifications re-applied, by outcome.",
    labelnames=("outcome",),
)

RECYCLE_REQUESTS: Final[Counter] = Counter(
    "webfarm_recycle_requests_total",
    "Recycle requests issued because a setting could not be hot-applied.",
)

# Metrics server management
_server_started = False
_server_lock = threading.Lock()


def start_metrics_server(port: int = 9090) -> bool:
    """Start the Prometheus metrics HTTP server.

    Args:
        port: HTTP port for the metrics server

    Returns:
        True if server started, False if already running
    """
    global _server_started

    with _server_lock:
        if _server_started:
            logger.debug(f"Metrics server already running on port {port}")
            return False

        from prometheus_client import start_http_server

        start_http_server(port)
        _server_started = True
        logger.info(f"Prometheus metrics server started on port {port}")
        return True


__all__ = [
    "CONFIG_CHANGES_APPLIED",
    "DRAIN_REQUESTS_CURRENT",
    "DRAIN_SAMPLES",
    "LIFECYCLE_EVENTS_FORWARDED",
    "RECYCLE_REQUESTS",
    "ROLE_STATE",
    "start_metrics_server",
]
