"""Prometheus instrumentation for every request, plus upload body sizes."""

from __future__ import annotations

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from speakercast.telemetry import observe_request, observe_request_body


def resolve_route(request: Request, static_prefix: str | None = None) -> str:
    """Route template (``/api/tracks/{filename}``) so track names stay out of labels."""

    if static_prefix and request.url.path.startswith(f"{static_prefix}/"):
        # The mount only records its own prefix; served files share one series.
        return f"{static_prefix}/{{filename}}"
    template = getattr(request.scope.get("route"), "path", None)
    return template or request.url.path


class TelemetryMiddleware(BaseHTTPMiddleware):
    """Record latency and status per route, and body size for POSTs."""

    def __init__(self, app: ASGIApp, *, static_prefix: str | None = None) -> None:
        super().__init__(app)
        self._static_prefix = static_prefix.rstrip("/") if static_prefix else None

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            route = resolve_route(request, self._static_prefix)
            observe_request(request.method, route, status_code, time.perf_counter() - started)
            if request.method == "POST":
                observe_request_body(route, request.headers.get("content-length"))
