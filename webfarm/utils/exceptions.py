"""Exception types and narrow exception tuples for the web farm role.

This module provides the role's exception hierarchy plus exception type tuples
for use in narrow exception handlers. Lifecycle boundaries (start, run) catch
broadly, record the failure, and re-raise; everything below them should only
catch the operational errors listed here so programming errors surface.

Usage:
    from webfarm.utils.exceptions import FS_ERRORS, RoleStateError

    try:
        path.chmod(0o777)
    except FS_ERRORS as e:
        logger.warning(f"chmod failed: {e}")
"""

from __future__ import annotations

import json
import logging

import yaml

# =============================================================================
# Exception Hierarchy
# =============================================================================


class WebFarmError(Exception):
    """Base class for all errors raised by the web farm role."""


class RoleStateError(WebFarmError):
    """Raised when a lifecycle command is issued in a state that forbids it.

    Role states only move forward, so e.g. calling ``run()`` before a
    successful ``on_start()`` or after ``on_stop()`` is an error.
    """


class CollaboratorLoadError(WebFarmError):
    """Raised when a sync/worker service factory cannot be imported."""


# =============================================================================
# Exception Type Tuples
# =============================================================================

# File system exceptions for disk operations
# Use for: permission grants, diagnostics persistence, temp dir setup
FS_ERRORS: tuple[type[BaseException], ...] = (
    OSError,           # File not found, permission denied, etc.
    PermissionError,   # Access denied
    FileNotFoundError, # Missing file
)

# Parsing exceptions for configuration files
# Use for: YAML service configuration, app settings, JSON records
PARSE_ERRORS: tuple[type[BaseException], ...] = (
    yaml.YAMLError,        # Malformed YAML
    json.JSONDecodeError,  # Malformed JSON
    KeyError,              # Missing expected key
    TypeError,             # Wrong type in data structure
    ValueError,            # Invalid value format
)

# Import exceptions for dotted-path factory loading
IMPORT_ERRORS: tuple[type[BaseException], ...] = (
    ImportError,
    ModuleNotFoundError,
    AttributeError,
)


def log_and_continue(
    e: BaseException,
    context: str,
    logger_instance: logging.Logger,
    level: int = logging.WARNING,
) -> None:
    """Log exception with context, allowing the caller to continue.

    Use this only for best-effort work (diagnostics, metrics) that must never
    block the role lifecycle.

    Args:
        e: The exception that was caught
        context: Short description of the operation (e.g., "persist_exception")
        logger_instance: Logger to use for logging
        level: Logging level (default: WARNING)
    """
    logger_instance.log(
        level,
        f"[{context}] Caught {type(e).__name__}: {e}",
    )


__all__ = [
    "WebFarmError",
    "RoleStateError",
    "CollaboratorLoadError",
    "FS_ERRORS",
    "PARSE_ERRORS",
    "IMPORT_ERRORS",
    "log_and_continue",
]
