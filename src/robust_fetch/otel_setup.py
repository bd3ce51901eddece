from __future__ import annotations

import os
from typing import Any, Optional

# robust_fetch works without opentelemetry; every init call below is then a no-op.
try:
    from opentelemetry import metrics, trace
    from opentelemetry.sdk.metrics import MeterProvider
    from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor
    from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
        OTLPMetricExporter as GrpcMetricExporter,
    )
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
        OTLPSpanExporter as GrpcSpanExporter,
    )
    from opentelemetry.exporter.otlp.proto.http.metric_exporter import (
        OTLPMetricExporter as HttpMetricExporter,
    )
    from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
        OTLPSpanExporter as HttpSpanExporter,
    )

    _OTEL_AVAILABLE = True
except Exception:  # pragma: no cover - graceful fallback when OTEL is missing
    _OTEL_AVAILABLE = False

_tracer_provider: Optional[Any] = None
_meter_provider: Optional[Any] = None


def _resource(service_name: str) -> "Resource":
    return Resource.create(
        {
            "service.name": service_name,
            "service.version": os.getenv("ROBUST_FETCH_SERVICE_VERSION", "dev"),
        }
    )


def init_tracer(service_name: str = "robust-fetch", exporter: str = "http") -> None:
    """
    Install a global TracerProvider exporting spans over OTLP.

    :param service_name: ``service.name`` resource attribute
    :param exporter: "http" (default) or "grpc"
    """
    global _tracer_provider

    if not _OTEL_AVAILABLE or _tracer_provider is not None:
        return

    span_exporter = GrpcSpanExporter() if exporter.lower() == "grpc" else HttpSpanExporter()
    provider = TracerProvider(resource=_resource(service_name))
    provider.add_span_processor(BatchSpanProcessor(span_exporter))
    trace.set_tracer_provider(provider)
    _tracer_provider = provider


def init_metrics(service_name: str = "robust-fetch", exporter: str = "http") -> None:
    """
    Install a global MeterProvider exporting the robust_fetch_* instruments over OTLP.
    """
    global _meter_provider

    if not _OTEL_AVAILABLE or _meter_provider is not None:
        return

    metric_exporter = GrpcMetricExporter() if exporter.lower() == "grpc" else HttpMetricExporter()
    reader = PeriodicExportingMetricReader(metric_exporter)
    provider = MeterProvider(resource=_resource(service_name), metric_readers=[reader])
    metrics.set_meter_provider(provider)
    _meter_provider = provider
