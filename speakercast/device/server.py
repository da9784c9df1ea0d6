"""HTTP control surface running on the speaker device.

Run with:
    python -m speakercast.device.server
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from pydantic import BaseModel

from speakercast.config.logging import configure_logging
from speakercast.config.settings import DeviceConfig, settings
from speakercast.errors import ValidationError
from speakercast.middleware import StructuredLoggingMiddleware, register_exception_handlers

from .controller import PlaybackController
from .hardware import CommandSink, HttpStreamDecoder, SysfsGpioAmplifier, VirtualAmplifier

logger = logging.getLogger(__name__)


class PlayRequest(BaseModel):
    url: Optional[str] = None


class PlaybackStatus(BaseModel):
    status: str


class DeviceStatus(BaseModel):
    state: str
    url: Optional[str] = None
    amplifier: bool


def build_controller(config: DeviceConfig) -> PlaybackController:
    """Wire the controller to real hardware when a GPIO is configured."""

    if config.amplifier_gpio is not None:
        amplifier = SysfsGpioAmplifier(config.amplifier_gpio)
    else:
        amplifier = VirtualAmplifier()
    decoder = HttpStreamDecoder(
        CommandSink(config.player_command),
        chunk_size=config.chunk_size,
        connect_timeout=config.connect_timeout,
    )
    return PlaybackController(
        amplifier,
        decoder,
        switch_grace_seconds=config.switch_grace_ms / 1000,
    )


def log_pump_exit(task: asyncio.Task) -> None:
    """Surface a pump task that died instead of leaving the error unread."""

    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error("Playback pump stopped: %r", error, exc_info=error)


def get_controller(request: Request) -> PlaybackController:
    return request.app.state.controller


def create_device_app(
    controller: PlaybackController | None = None,
    config: DeviceConfig | None = None,
) -> FastAPI:
    device_config = config or settings.device
    playback = controller or build_controller(device_config)

    app = FastAPI(title="SpeakerCast Device", version=settings.app_version)
    app.state.controller = playback
    app.add_middleware(StructuredLoggingMiddleware)
    register_exception_handlers(app)

    @app.post("/api/play", response_model=PlaybackStatus)
    async def play(payload: PlayRequest, request: Request) -> PlaybackStatus:
        url = (payload.url or "").strip()
        if not url:
            raise ValidationError("Missing 'url'")
        request.state.stream_url = url
        await get_controller(request).play(url)
        return PlaybackStatus(status="playing")

    @app.post("/api/stop", response_model=PlaybackStatus)
    async def stop(request: Request) -> PlaybackStatus:
        await get_controller(request).stop()
        return PlaybackStatus(status="stopped")

    @app.get("/api/status", response_model=DeviceStatus)
    async def device_status(request: Request) -> DeviceStatus:
        snapshot = get_controller(request).snapshot()
        return DeviceStatus(
            state=snapshot.state.value,
            url=snapshot.url,
            amplifier=snapshot.amplifier_enabled,
        )

    @app.on_event("startup")
    async def start_pump() -> None:
        interval = device_config.pump_interval_ms / 1000
        task = asyncio.create_task(playback.run(interval))
        task.add_done_callback(log_pump_exit)
        app.state.pump_task = task
        logger.info("Playback pump started (interval %.3fs)", interval)

    @app.on_event("shutdown")
    async def stop_pump() -> None:
        task = getattr(app.state, "pump_task", None)
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await playback.stop()

    return app


if __name__ == "__main__":
    configure_logging(log_file="logs/device.log", debug=settings.debug)
    uvicorn.run(
        create_device_app(),
        host=settings.device.host,
        port=settings.device.port,
    )
