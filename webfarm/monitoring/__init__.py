"""Diagnostics for the role lifecycle."""

from webfarm.monitoring.diagnostics import DiagnosticsSink

__all__ = ["DiagnosticsSink"]
