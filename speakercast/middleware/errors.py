"""Exception handlers translating domain errors into JSON responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from speakercast.errors import SpeakerCastError

logger = logging.getLogger(__name__)


def _jsonable_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    """Reduce pydantic errors to location/message pairs safe for JSON."""

    return [
        {
            "loc": ".".join(str(part) for part in error.get("loc", ())),
            "msg": str(error.get("msg", "")),
        }
        for error in exc.errors()
    ]


def register_exception_handlers(app: FastAPI) -> None:
    """Install the shared handlers on ``app``.

    Domain errors keep their own status code, malformed bodies become 400 and
    anything unexpected becomes a 500 carrying the error's message.
    """

    @app.exception_handler(SpeakerCastError)
    async def speakercast_exception_handler(request: Request, exc: SpeakerCastError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": str(exc)},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Invalid request", "errors": _jsonable_errors(exc)},
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": str(exc) or "Internal server error"},
        )


__all__ = ["register_exception_handlers"]
