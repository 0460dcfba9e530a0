"""
OpenTelemetry Exporter for the gateway

Architectural Intent:
- Exports tool-call telemetry to OTLP-compatible backends
- One span and two metrics per tool call (duration, call count)
- Telemetry stays disabled until an endpoint is configured

Security:
- Endpoint defaults to empty string (must be explicitly configured)
- Non-localhost http:// endpoints rejected unless insecure=True
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Any
from urllib.parse import urlparse
import logging
from datetime import datetime, UTC

logger = logging.getLogger(__name__)


@dataclass
class OTELConfig:
    endpoint: str = ""
    service_name: str = "aias-executor"
    environment: str = "development"
    enable_traces: bool = True
    enable_metrics: bool = True
    insecure: bool = False

    def __post_init__(self) -> None:
        if self.endpoint:
            parsed = urlparse(self.endpoint)
            is_localhost = parsed.hostname in ("localhost", "127.0.0.1", "::1")
            if parsed.scheme == "http" and not is_localhost and not self.insecure:
                raise ValueError(
                    f"Non-localhost HTTP endpoint '{self.endpoint}' requires "
                    "insecure=True or use https://. "
                    "Set insecure=True to explicitly allow plaintext export."
                )


class OTELExporter:
    """
    OpenTelemetry exporter for tool execution.

    Metrics are buffered locally as well, so callers can inspect what was
    recorded even when no backend is configured.
    """

    def __init__(self, config: OTELConfig):
        self.config = config
        self._initialized = False
        self._metrics_buffer: list[dict[str, Any]] = []
        self._meter: Any = None
        self._instruments: dict[str, Any] = {}

    def initialize(self) -> None:
        """Initialize OpenTelemetry SDK and exporters."""
        if not self.config.endpoint:
            logger.info("OTEL endpoint not configured, telemetry disabled")
            return

        from opentelemetry import metrics, trace
        from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
            OTLPMetricExporter,
        )
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
            OTLPSpanExporter,
        )
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
        from opentelemetry.sdk.resources import Resource, SERVICE_NAME
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor

        resource = Resource(
            attributes={
                SERVICE_NAME: self.config.service_name,
                "environment": self.config.environment,
            }
        )

        try:
            if self.config.enable_traces:
                provider = TracerProvider(resource=resource)
                provider.add_span_processor(
                    BatchSpanProcessor(
                        OTLPSpanExporter(
                            endpoint=self.config.endpoint,
                            insecure=self.config.insecure,
                        )
                    )
                )
                trace.set_tracer_provider(provider)

            if self.config.enable_metrics:
                metric_reader = PeriodicExportingMetricReader(
                    OTLPMetricExporter(
                        endpoint=self.config.endpoint,
                        insecure=self.config.insecure,
                    )
                )
                metrics.set_meter_provider(
                    MeterProvider(resource=resource, metric_readers=[metric_reader])
                )
                self._meter = metrics.get_meter(__name__)

            self._initialized = True
        except Exception as e:
            logger.error("Failed to initialize OTEL: %s", e)
            self._initialized = False

    def _get_histogram(self, name: str, unit: str = "") -> Any:
        if name not in self._instruments and self._meter:
            self._instruments[name] = self._meter.create_histogram(name, unit=unit)
        return self._instruments.get(name)

    def _get_counter(self, name: str) -> Any:
        if name not in self._instruments and self._meter:
            self._instruments[name] = self._meter.create_counter(name)
        return self._instruments.get(name)

    def record_metric(
        self,
        name: str,
        value: float,
        unit: str = "",
        attributes: Optional[dict[str, str]] = None,
    ) -> None:
        """Record a metric value."""
        self._metrics_buffer.append(
            {
                "name": name,
                "value": value,
                "unit": unit,
                "attributes": attributes or {},
                "timestamp": datetime.now(UTC).isoformat(),
            }
        )

        if self._initialized:
            histogram = self._get_histogram(name, unit)
            if histogram:
                histogram.record(value, attributes=attributes or {})

    def record_tool_call(self, tool: str, success: bool, duration_ms: float) -> None:
        """Record one tool execution."""
        attributes = {"tool": tool, "success": str(success)}
        self.record_metric(
            "aias.tool.duration_ms", duration_ms, unit="ms", attributes=attributes
        )
        if self._initialized:
            counter = self._get_counter("aias.tool.calls")
            if counter:
                counter.add(1, attributes=attributes)

    def start_span(
        self,
        name: str,
        attributes: Optional[dict[str, str]] = None,
    ) -> Optional[Any]:
        """Start a tracing span."""
        if not self._initialized:
            return None

        from opentelemetry import trace

        tracer = trace.get_tracer(__name__)
        return tracer.start_span(name, attributes=attributes or {})

    def end_span(self, span: Any, error: Optional[str] = None) -> None:
        """End a tracing span, marking it failed when `error` is given."""
        if span is None:
            return
        if error:
            from opentelemetry.trace import Status, StatusCode

            span.set_status(Status(StatusCode.ERROR, error))
        span.end()

    def flush(self) -> int:
        """Drop buffered metrics and return how many there were."""
        count = len(self._metrics_buffer)
        self._metrics_buffer.clear()
        if count:
            logger.debug("Flushed %d buffered metrics", count)
        return count


def create_exporter(
    endpoint: Optional[str] = None,
    service_name: str = "aias-executor",
    insecure: bool = False,
) -> OTELExporter:
    """Factory function to create OTEL exporter."""
    config = OTELConfig(
        endpoint=endpoint or "",
        service_name=service_name,
        insecure=insecure,
    )
    exporter = OTELExporter(config)
    exporter.initialize()
    return exporter
