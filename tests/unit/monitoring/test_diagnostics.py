"""Tests for DiagnosticsSink."""

import json
import logging
from unittest.mock import patch

import pytest

from webfarm.monitoring.diagnostics import DiagnosticsSink


def raise_and_catch(exc: Exception) -> Exception:
    try:
        raise exc
    except Exception as e:
        return e


@pytest.fixture
def sink(tmp_path):
    return DiagnosticsSink(tmp_path / "diagnostics")


class TestPersistException:
    def test_writes_json_record(self, sink):
        exc = raise_and_catch(ValueError("Local resource not found: Execution"))

        path = sink.persist_exception(exc)

        assert path is not None
        assert path.parent == sink.diagnostics_dir
        record = json.loads(path.read_text())
        assert record["type"] == "builtins.ValueError"
        assert record["message"] == "Local resource not found: Execution"
        assert record["source"] == "WebFarmRole"
        assert any("raise_and_catch" in line for line in record["traceback"])

    def test_records_are_not_overwritten(self, sink):
        first = sink.persist_exception(RuntimeError("a"))
        second = sink.persist_exception(RuntimeError("b"))

        assert first != second
        assert len(list(sink.diagnostics_dir.glob("exception-*.json"))) == 2

    def test_no_temp_files_left(self, sink):
        sink.persist_exception(RuntimeError("boom"))
        assert list(sink.diagnostics_dir.glob("*.tmp")) == []

    def test_unwritable_dir_returns_none(self, tmp_path, caplog):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        sink = DiagnosticsSink(blocker)

        with caplog.at_level(logging.WARNING):
            assert sink.persist_exception(RuntimeError("boom")) is None
        assert "persist_exception" in caplog.text


class TestLogging:
    def test_log_info_prefixes_source(self, sink, caplog):
        with caplog.at_level(logging.INFO, logger="webfarm.monitoring.diagnostics"):
            sink.log_info("OnStart")
        assert "[WebFarmRole] OnStart" in caplog.text

    def test_log_error(self, sink, caplog):
        with caplog.at_level(logging.ERROR, logger="webfarm.monitoring.diagnostics"):
            sink.log_error("Traceback ...")
        assert caplog.records[-1].levelno == logging.ERROR


class TestConfigureMonitor:
    def test_starts_metrics_server(self, sink):
        with patch("webfarm.monitoring.diagnostics.start_metrics_server") as start:
            assert sink.configure_monitor(9191) is True
        start.assert_called_once_with(9191)
        assert sink.monitor_enabled is True

    def test_port_in_use_is_not_fatal(self, sink):
        with patch(
            "webfarm.monitoring.diagnostics.start_metrics_server",
            side_effect=OSError("Address already in use"),
        ):
            assert sink.configure_monitor(9191) is False
        assert sink.monitor_enabled is False
