"""Prometheus metrics definitions and helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests processed",
    ("method", "route", "status"),
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
    ),
)

ERROR_COUNTER = Counter(
    "app_internal_errors_total",
    "Number of requests ending in internal server error responses",
    ("method", "route"),
)

REQUEST_BODY_BYTES = Histogram(
    "http_request_body_bytes",
    "Declared request body size of POST requests, mostly audio uploads",
    ("route",),
    buckets=(
        1024,
        16 * 1024,
        256 * 1024,
        1024 * 1024,
        4 * 1024 * 1024,
        16 * 1024 * 1024,
        64 * 1024 * 1024,
    ),
)

INGESTION_COUNTER = Counter(
    "audio_ingestions_total",
    "Ingestion pipeline invocations by input source and outcome",
    ("source", "outcome"),
)

TRANSCODE_DURATION = Histogram(
    "audio_transcode_duration_seconds",
    "Wall time spent in the external transcoder",
    buckets=(0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)


def observe_request(
    method: str,
    route: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Record metrics for a completed HTTP request."""

    safe_route = route or "unknown"
    safe_method = method or "UNKNOWN"
    status_label = str(status_code)
    observed_duration = duration_seconds if duration_seconds >= 0 else 0

    REQUEST_COUNT.labels(
        method=safe_method,
        route=safe_route,
        status=status_label,
    ).inc()
    REQUEST_LATENCY.labels(
        method=safe_method,
        route=safe_route,
    ).observe(observed_duration)

    if status_code >= 500:
        ERROR_COUNTER.labels(
            method=safe_method,
            route=safe_route,
        ).inc()


def observe_ingestion(source: str, outcome: str) -> None:
    """Count one finished ingestion, e.g. ``("upload", "published")``."""

    INGESTION_COUNTER.labels(source=source or "unknown", outcome=outcome).inc()


def observe_transcode(duration_seconds: float) -> None:
    TRANSCODE_DURATION.observe(max(0.0, duration_seconds))


def observe_request_body(route: str, content_length: str | None) -> None:
    """Record a POST body size; requests without a usable length are skipped."""

    try:
        size = int(content_length) if content_length else None
    except ValueError:
        size = None
    if size is not None and size >= 0:
        REQUEST_BODY_BYTES.labels(route=route or "unknown").observe(size)
