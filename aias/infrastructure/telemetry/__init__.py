"""
Gateway Telemetry Infrastructure

Architectural Intent:
- OpenTelemetry integration for observability
- Tool-call metrics and traces export
"""

from aias.infrastructure.telemetry.otel_exporter import (
    OTELExporter,
    OTELConfig,
    create_exporter,
)

__all__ = [
    "OTELExporter",
    "OTELConfig",
    "create_exporter",
]
