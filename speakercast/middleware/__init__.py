"""Application middleware package."""

from .errors import register_exception_handlers
from .logging import StructuredLoggingMiddleware
from .telemetry import TelemetryMiddleware, resolve_route

__all__ = [
    "StructuredLoggingMiddleware",
    "TelemetryMiddleware",
    "register_exception_handlers",
    "resolve_route",
]
