"""Telemetry helpers and metrics."""

from .metrics import (
    ERROR_COUNTER,
    INGESTION_COUNTER,
    REQUEST_COUNT,
    REQUEST_BODY_BYTES,
    REQUEST_LATENCY,
    TRANSCODE_DURATION,
    observe_ingestion,
    observe_request,
    observe_request_body,
    observe_transcode,
)

__all__ = [
    "ERROR_COUNTER",
    "INGESTION_COUNTER",
    "REQUEST_COUNT",
    "REQUEST_BODY_BYTES",
    "REQUEST_LATENCY",
    "TRANSCODE_DURATION",
    "observe_ingestion",
    "observe_request",
    "observe_request_body",
    "observe_transcode",
]
