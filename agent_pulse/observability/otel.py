"""OpenTelemetry + Prometheus fallback wiring for Agent Pulse."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any

from fastapi import FastAPI

from agent_pulse import config

logger = logging.getLogger("agent_pulse.observability")


_initialized = False
_enabled = False
_tracer: Any | None = None
_trace_provider: Any | None = None
_meter_provider: Any | None = None
_fastapi_instrumentor: Any | None = None

_scanned_counter: Any | None = None
_dropped_counter: Any | None = None
_scan_latency_hist: Any | None = None
_rejection_counter: Any | None = None

_prom_enabled = False
_prom_scanned_counter: Any | None = None
_prom_dropped_counter: Any | None = None
_prom_scan_latency_hist: Any | None = None
_prom_rejection_counter: Any | None = None


def _normalize_otlp_endpoint(base_endpoint: str, signal_path: str) -> str:
    endpoint = (base_endpoint or "").strip()
    if not endpoint:
        return ""
    if endpoint.endswith(signal_path):
        return endpoint
    if endpoint.endswith("/"):
        endpoint = endpoint[:-1]
    if endpoint.endswith("/v1"):
        return f"{endpoint}{signal_path[3:]}"
    return f"{endpoint}{signal_path}"


def initialize(app: FastAPI | None = None) -> None:
    global _initialized, _enabled, _tracer, _trace_provider, _meter_provider, _fastapi_instrumentor
    global _scanned_counter, _dropped_counter, _scan_latency_hist, _rejection_counter
    global _prom_enabled, _prom_scanned_counter, _prom_dropped_counter
    global _prom_scan_latency_hist, _prom_rejection_counter

    if _initialized:
        if _enabled and app and _fastapi_instrumentor:
            _fastapi_instrumentor.instrument_app(app)
        return

    _initialized = True

    if not config.OTEL_ENABLED:
        logger.info("OpenTelemetry disabled (AGENT_PULSE_OTEL_ENABLED=false)")
        return

    try:
        from opentelemetry import metrics, trace
        from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as exc:
        logger.warning("OpenTelemetry dependencies unavailable: %s", exc)
        return

    traces_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/traces")
    metrics_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/metrics")
    service_name = config.OTEL_SERVICE_NAME or "agent-pulse"

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.namespace": "agent-pulse",
        }
    )

    trace_provider = TracerProvider(resource=resource)
    trace_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=traces_endpoint or None)))
    trace.set_tracer_provider(trace_provider)

    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=metrics_endpoint or None)
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)
    meter = metrics.get_meter("agent_pulse")

    _scanned_counter = meter.create_counter(
        "agent_pulse_records_scanned_total",
        unit="1",
        description="Records read from the session store per scan",
    )
    _dropped_counter = meter.create_counter(
        "agent_pulse_records_dropped_total",
        unit="1",
        description="Records skipped because they were unreadable or malformed",
    )
    _scan_latency_hist = meter.create_histogram(
        "agent_pulse_scan_latency_ms",
        unit="ms",
        description="Latency of bounded store scans",
    )
    _rejection_counter = meter.create_counter(
        "agent_pulse_path_rejections_total",
        unit="1",
        description="Paths rejected by the allowed-root guard",
    )

    _trace_provider = trace_provider
    _meter_provider = meter_provider
    _tracer = trace.get_tracer("agent_pulse")
    _fastapi_instrumentor = FastAPIInstrumentor()
    _enabled = True

    if app:
        _fastapi_instrumentor.instrument_app(app)

    if config.PROM_PORT > 0:
        try:
            from prometheus_client import Counter, Histogram, start_http_server

            start_http_server(config.PROM_PORT)
            _prom_scanned_counter = Counter(
                "agent_pulse_records_scanned_total",
                "Records read from the session store per scan",
                ["entity"],
            )
            _prom_dropped_counter = Counter(
                "agent_pulse_records_dropped_total",
                "Records skipped because they were unreadable or malformed",
                ["entity"],
            )
            _prom_scan_latency_hist = Histogram(
                "agent_pulse_scan_latency_ms",
                "Latency of bounded store scans",
                ["entity"],
            )
            _prom_rejection_counter = Counter(
                "agent_pulse_path_rejections_total",
                "Paths rejected by the allowed-root guard",
            )
            _prom_enabled = True
            logger.info("Prometheus fallback metrics server listening on port %s", config.PROM_PORT)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Prometheus fallback not started: %s", exc)
            _prom_enabled = False

    logger.info(
        "OpenTelemetry initialized (service=%s endpoint=%s)",
        service_name,
        config.OTEL_ENDPOINT,
    )


def shutdown(app: FastAPI | None = None) -> None:
    global _enabled
    if not _initialized:
        return
    try:
        if app and _fastapi_instrumentor:
            _fastapi_instrumentor.uninstrument_app(app)
    except Exception as exc:  # noqa: BLE001
        logger.debug("FastAPI uninstrument failed: %s", exc)
    for provider in (_meter_provider, _trace_provider):
        if provider is None:
            continue
        try:
            provider.shutdown()
        except Exception as exc:  # noqa: BLE001
            logger.debug("Telemetry provider shutdown failed: %s", exc)
    _enabled = False


@contextmanager
def start_span(name: str, attributes: dict[str, Any] | None = None):
    if not _enabled or _tracer is None:
        yield None
        return
    with _tracer.start_as_current_span(name) as span:
        if attributes:
            for key, value in attributes.items():
                if value is not None:
                    span.set_attribute(key, value)
        yield span


def record_scan(entity: str, scanned: int, dropped: int, duration_ms: float) -> None:
    labels = {"entity": entity or "unknown"}
    scanned = max(0, int(scanned))
    dropped = max(0, int(dropped))
    if _enabled and _scanned_counter is not None and scanned:
        _scanned_counter.add(scanned, labels)
    if _enabled and _dropped_counter is not None and dropped:
        _dropped_counter.add(dropped, labels)
    if _enabled and _scan_latency_hist is not None:
        _scan_latency_hist.record(max(0.0, float(duration_ms)), labels)
    if _prom_enabled and _prom_scanned_counter is not None and scanned:
        _prom_scanned_counter.labels(**labels).inc(scanned)
    if _prom_enabled and _prom_dropped_counter is not None and dropped:
        _prom_dropped_counter.labels(**labels).inc(dropped)
    if _prom_enabled and _prom_scan_latency_hist is not None:
        _prom_scan_latency_hist.labels(**labels).observe(max(0.0, float(duration_ms)))


def record_path_rejection() -> None:
    if _enabled and _rejection_counter is not None:
        _rejection_counter.add(1)
    if _prom_enabled and _prom_rejection_counter is not None:
        _prom_rejection_counter.inc()
