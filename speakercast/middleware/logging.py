"""Access log middleware shared by the ingestion and device servers."""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from .telemetry import resolve_route

logger = logging.getLogger("speakercast.middleware.structured")

COLOR_RESET = "\u001b[0m"
_STATUS_COLORS = (
    (500, "\u001b[31m"),
    (400, "\u001b[33m"),
    (200, "\u001b[32m"),
)
_DEFAULT_COLOR = "\u001b[36m"

# Set by controllers on ``request.state`` and echoed in the access line.
CONTEXT_FIELDS = ("artifact", "stream_url")


def _length(value: str | None) -> int | None:
    try:
        return int(value) if value else None
    except ValueError:
        return None


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """One colored access line per request; the full record at DEBUG as JSON.

    Besides method, route and status the line carries body sizes in both
    directions, so a stalled 40 MB upload is easy to tell from a slow
    transcode, and whatever artifact or stream the handler acted on.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        started = time.perf_counter()
        record: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None,
            "bytes_in": _length(request.headers.get("content-length")),
        }

        try:
            response = await call_next(request)
        except Exception as exc:
            record.update(status=500, error=repr(exc))
            self._finish(record, request, started)
            logger.exception(self.render(record))
            raise

        record.update(
            status=response.status_code,
            bytes_out=_length(response.headers.get("content-length")),
        )
        self._finish(record, request, started)
        logger.info(self.render(record))
        logger.debug(json.dumps(record, default=str, separators=(",", ":")))
        return response

    @staticmethod
    def _finish(record: dict[str, Any], request: Request, started: float) -> None:
        record["route"] = resolve_route(request)
        record["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
        for name in CONTEXT_FIELDS:
            value = getattr(request.state, name, None)
            if value is not None:
                record[name] = value

    @staticmethod
    def render(record: dict[str, Any]) -> str:
        """Console form: ``POST /api/upload 200 812.4ms in=2117702 out=311 artifact=...``."""

        status = record.get("status") or 0
        color = next(
            (code for threshold, code in _STATUS_COLORS if status >= threshold),
            _DEFAULT_COLOR,
        )
        parts = [
            f"{record['method']} {record['path']}",
            str(status),
            f"{record.get('duration_ms', 0)}ms",
        ]
        for key, label in (("bytes_in", "in"), ("bytes_out", "out")):
            if record.get(key) is not None:
                parts.append(f"{label}={record[key]}")
        for name in CONTEXT_FIELDS:
            if name in record:
                parts.append(f"{name}={record[name]}")
        if record.get("client_ip"):
            parts.append(f"client={record['client_ip']}")
        return f"{color}{' '.join(parts)}{COLOR_RESET}"
