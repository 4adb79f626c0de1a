"""Process-wide limit on concurrent outbound connections.

The role sets the limit once during start but opens no connections itself.
The limit is part of the collaborator contract: sync and worker services must
build their aiohttp sessions on ``create_connector()`` so that storage and
sync traffic stay within it.

Usage:
    from webfarm.utils.http import create_connector

    async with aiohttp.ClientSession(connector=create_connector()) as session:
        ...
"""

from __future__ import annotations

import logging
import threading

import aiohttp

logger = logging.getLogger(__name__)

DEFAULT_CONNECTION_LIMIT = 12

_connection_limit = DEFAULT_CONNECTION_LIMIT
_limit_lock = threading.Lock()


def set_connection_limit(limit: int) -> None:
    """Set the max number of simultaneous outbound connections."""
    global _connection_limit

    if limit < 1:
        raise ValueError(f"Connection limit must be positive, got {limit}")
    with _limit_lock:
        _connection_limit = limit
    logger.debug(f"Outbound connection limit set to {limit}")


def get_connection_limit() -> int:
    with _limit_lock:
        return _connection_limit


def create_connector(**kwargs) -> aiohttp.TCPConnector:
    """Create a TCPConnector honouring the process-wide connection limit.

    Must be called from within a running event loop.
    """
    kwargs.setdefault("limit", get_connection_limit())
    return aiohttp.TCPConnector(**kwargs)


__all__ = [
    "DEFAULT_CONNECTION_LIMIT",
    "create_connector",
    "get_connection_limit",
    "set_connection_limit",
]
