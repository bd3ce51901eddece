from __future__ import annotations

import os
import time
from typing import Any, Dict, Optional

from .core import robust_fetch
from .result import FetchResult


# --- Helpers for env flags ----------------------------------------------------

_TRUTHY = {"1", "true", "yes", "on"}


def _otel_enabled(explicit: Optional[bool]) -> bool:
    if explicit is not None:
        return explicit
    return os.getenv("ROBUST_FETCH_OTEL_ENABLED", "").lower() in _TRUTHY


def _metrics_enabled() -> bool:
    return os.getenv("ROBUST_FETCH_OTEL_METRICS_ENABLED", "").lower() in _TRUTHY


# --- Metrics plumbing (lazy / optional) --------------------------------------

try:
    from opentelemetry import metrics as _otel_metrics  # type: ignore[attr-defined]
except Exception:  # pragma: no cover - OTEL not installed
    _otel_metrics = None  # type: ignore[assignment]

_requests_counter = None
_attempts_counter = None
_duration_histogram = None
_metrics_instruments_ready = False


def _ensure_metrics() -> None:
    """
    Create the metric instruments once, if metrics are enabled and OTEL is
    importable.
    """
    global _requests_counter, _attempts_counter, _duration_histogram, _metrics_instruments_ready

    if _metrics_instruments_ready or not _metrics_enabled() or _otel_metrics is None:
        return

    meter = _otel_metrics.get_meter(__name__)
    _requests_counter = meter.create_counter(
        "robust_fetch_operations_total",
        description="Total number of robust_fetch invocations.",
    )
    _attempts_counter = meter.create_counter(
        "robust_fetch_attempts_total",
        description="Total number of transport attempts (including retries).",
    )
    _duration_histogram = meter.create_histogram(
        "robust_fetch_operation_duration_seconds",
        description="Latency of robust_fetch invocations, retries and delays included.",
        unit="s",
    )
    _metrics_instruments_ready = True


# --- Traced fetch -------------------------------------------------------------


async def robust_fetch_traced_optional(
    target: str,
    *,
    otel_enabled: Optional[bool] = None,  # None -> read env ROBUST_FETCH_OTEL_ENABLED
    span_name: str = "robust_fetch.request",
    base_attrs: Optional[Dict[str, Any]] = None,
    **kwargs: Any,
) -> FetchResult:
    """
    ``robust_fetch`` with a span around the whole invocation when
    OpenTelemetry is installed and enabled; plain ``robust_fetch`` otherwise.

    Each attempt is recorded as a span event. The final result sets
    ``robust_fetch.outcome`` and, on failure, ``robust_fetch.error.kind``.
    With ROBUST_FETCH_OTEL_METRICS_ENABLED=1 it also emits
    ``robust_fetch_operations_total``, ``robust_fetch_attempts_total`` and
    ``robust_fetch_operation_duration_seconds``.
    """
    if not _otel_enabled(otel_enabled):
        return await robust_fetch(target, **kwargs)

    try:
        from opentelemetry import trace
        from opentelemetry.trace import SpanKind, Status, StatusCode
    except Exception:
        return await robust_fetch(target, **kwargs)

    tracer = trace.get_tracer(__name__)
    _ensure_metrics()
    metrics_active = _metrics_instruments_ready and _metrics_enabled()

    retry = kwargs.get("retry")
    attrs: Dict[str, Any] = {
        "url.full": target,
        "http.request.method": str(kwargs.get("method", "GET")).upper(),
        "robust_fetch.timeout_s": kwargs.get("timeout"),
        "robust_fetch.retry.strategy": type(retry).__name__ if retry is not None else None,
        "robust_fetch.retry.attempts": getattr(retry, "attempts", None),
        "robust_fetch.schema": kwargs.get("schema") is not None,
    }
    if base_attrs:
        attrs.update({k: v for k, v in base_attrs.items() if v is not None})
    metric_attrs_base = {"http.request.method": attrs["http.request.method"]}

    attempt_events = {"n": 0}
    orig_pre = kwargs.pop("pre_attempt", None)
    start = time.perf_counter()

    with tracer.start_as_current_span(span_name, kind=SpanKind.CLIENT) as root:
        for k, v in attrs.items():
            if v is not None:
                root.set_attribute(k, v)

        async def pre() -> None:
            attempt_events["n"] += 1
            if metrics_active and _attempts_counter is not None:
                _attempts_counter.add(1, attributes=metric_attrs_base)
            root.add_event("robust_fetch.attempt", {"robust_fetch.attempt.number": attempt_events["n"]})
            if orig_pre:
                await orig_pre()

        result = await robust_fetch(target, pre_attempt=pre, **kwargs)

        root.set_attribute("robust_fetch.attempts", attempt_events["n"])
        if result.is_ok:
            outcome = "success"
            root.set_attribute("http.response.status_code", result.value.status)
        else:
            outcome = "error"
            root.record_exception(result.error)
            root.set_attribute("robust_fetch.error.kind", result.error.kind.value)
            root.set_status(Status(StatusCode.ERROR))
        root.set_attribute("robust_fetch.outcome", outcome)

    if metrics_active and _requests_counter is not None and _duration_histogram is not None:
        metric_attrs = {**metric_attrs_base, "robust_fetch.outcome": outcome}
        _requests_counter.add(1, attributes=metric_attrs)
        _duration_histogram.record(time.perf_counter() - start, attributes=metric_attrs)

    return result
