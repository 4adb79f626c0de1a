"""Diagnostics sink for the role lifecycle.

Fire-and-forget: logging, exception persistence for post-mortems, and the
diagnostics monitor (the Prometheus exporter). Nothing here may raise into the
lifecycle; failures to record are logged at WARNING and dropped.

Persisted exceptions are JSON records, one file per exception:

    <diagnostics_dir>/exception-<UTC timestamp>-<pid>-<n>.json
"""

from __future__ import annotations

import itertools
import json
import logging
import os
import socket
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from webfarm.metrics import start_metrics_server
from webfarm.utils.exceptions import FS_ERRORS, log_and_continue

logger = logging.getLogger(__name__)


class DiagnosticsSink:
    """Best-effort diagnostics for the role."""

    def __init__(self, diagnostics_dir: Path, source: str = "WebFarmRole"):
        self._dir = Path(diagnostics_dir)
        self._source = source
        self._sequence = itertools.count(1)
        self._monitor_enabled = False

    @property
    def diagnostics_dir(self) -> Path:
        return self._dir

    @property
    def monitor_enabled(self) -> bool:
        return self._monitor_enabled

    def log_info(self, message: str) -> None:
        logger.info(f"[{self._source}] {message}")

    def log_error(self, message: str) -> None:
        logger.error(f"[{self._source}] {message}")

    def configure_monitor(self, port: int) -> bool:
        """Start the diagnostics monitor.

        Returns:
            True if the monitor is running after the call
        """
        try:
            start_metrics_server(port)
            self._monitor_enabled = True
        except OSError as e:
            log_and_continue(e, "configure_monitor", logger)
        return self._monitor_enabled

    def persist_exception(self, exc: BaseException) -> Path | None:
        """Write an exception record for post-mortem analysis.

        Returns:
            Path of the record, or None if it could not be written
        """
        record = self._build_record(exc)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        path = self._dir / f"exception-{stamp}-{os.getpid()}-{next(self._sequence)}.json"
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".tmp")
            tmp_path.write_text(json.dumps(record, indent=2))
            tmp_path.replace(path)
        except FS_ERRORS as e:
            log_and_continue(e, "persist_exception", logger)
            return None

        logger.debug(f"[{self._source}] Persisted exception to {path}")
        return path

    def _build_record(self, exc: BaseException) -> dict[str, Any]:
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "source": self._source,
            "host": socket.gethostname(),
            "pid": os.getpid(),
            "type": f"{type(exc).__module__}.{type(exc).__qualname__}",
            "message": str(exc),
            "traceback": traceback.format_exception(type(exc), exc, exc.__traceback__),
        }


__all__ = ["DiagnosticsSink"]
