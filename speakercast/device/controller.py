"""Playback state machine for the speaker device.

The controller exclusively owns the amplifier line and the stream decoder.
Transitions go through an :class:`asyncio.Lock`, so a play request that
arrives while another stream is running stops that stream before opening
the new one and two decode sessions never overlap.

Opening a stream can take seconds, so the open runs as its own task outside
the lock. Every play and stop bumps a generation counter and cancels a
pending open; a play whose generation is stale when its open finishes gives
up with :class:`PlaybackInterruptedError`. ``loop`` is called continuously by
the host runtime to move audio and never holds the lock while waiting on the
network.

Amplifier rule: enabled only in ``STARTING`` or ``ACTIVE``. Every path into
``IDLE`` disables it, including a failed open and a decoder that fails to
close.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from speakercast.errors import PlaybackInterruptedError, StreamOpenError

from .hardware import Amplifier, StreamDecoder

logger = logging.getLogger(__name__)

DEFAULT_SWITCH_GRACE_SECONDS = 0.1


class PlaybackState(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    ACTIVE = "active"
    STOPPING = "stopping"


@dataclass
class StreamSession:
    url: str
    state: PlaybackState = PlaybackState.STARTING
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class PlaybackSnapshot:
    state: PlaybackState
    url: str | None
    amplifier_enabled: bool


def _settle(task: asyncio.Task) -> BaseException | None:
    """Return the task's error (marking it retrieved), or ``None``."""

    if task.cancelled():
        return None
    return task.exception()


class PlaybackController:
    def __init__(
        self,
        amplifier: Amplifier,
        decoder: StreamDecoder,
        *,
        switch_grace_seconds: float = DEFAULT_SWITCH_GRACE_SECONDS,
    ) -> None:
        self._amplifier = amplifier
        self._decoder = decoder
        self._grace = max(0.0, switch_grace_seconds)
        self._state = PlaybackState.IDLE
        self._session: StreamSession | None = None
        self._lock = asyncio.Lock()
        self._generation = 0
        self._opening: asyncio.Task | None = None
        if self._amplifier.is_enabled:
            self._amplifier.disable()

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def session(self) -> StreamSession | None:
        return self._session

    def snapshot(self) -> PlaybackSnapshot:
        return PlaybackSnapshot(
            state=self._state,
            url=self._session.url if self._session else None,
            amplifier_enabled=self._amplifier.is_enabled,
        )

    async def play(self, url: str) -> StreamSession:
        """Start ``url``, preempting whatever is playing or still opening.

        Raises :class:`StreamOpenError` after returning to ``IDLE`` with the
        amplifier off, or :class:`PlaybackInterruptedError` when a stop or a
        newer play arrived before the open finished.
        """

        async with self._lock:
            self._generation += 1
            generation = self._generation
            await self._cancel_opening()
            if self._state is not PlaybackState.IDLE:
                previous = self._session.url if self._session else None
                logger.info("Switching stream %s -> %s", previous, url)
                self._set_state(PlaybackState.STARTING)
                await self._close_decoder()
                # Let the decoder release its buffers before reopening.
                await asyncio.sleep(self._grace)

            session = StreamSession(url=url)
            self._session = session
            self._set_state(PlaybackState.STARTING)
            if not self._amplifier.is_enabled:
                self._amplifier.enable()
            opening = asyncio.create_task(self._decoder.open(url))
            self._opening = opening

        try:
            await asyncio.wait({opening})
        except asyncio.CancelledError:
            opening.cancel()
            async with self._lock:
                if generation == self._generation:
                    self._generation += 1
                    await self._cancel_opening()
                    await self._enter_idle()
            raise

        async with self._lock:
            if generation != self._generation:
                _settle(opening)
                logger.info("Open of %s was interrupted", url)
                raise PlaybackInterruptedError(f"Playback of {url} was interrupted")

            self._opening = None
            if opening.cancelled():
                await self._enter_idle()
                raise StreamOpenError(f"Opening {url} was cancelled")
            error = opening.exception()
            if isinstance(error, StreamOpenError):
                logger.warning("Failed to open stream %s: %s", url, error)
                await self._enter_idle()
                raise error
            if error is not None:
                logger.error("Decoder crashed while opening %s", url, exc_info=error)
                await self._enter_idle()
                raise StreamOpenError(f"Could not open {url}: {error}") from error

            self._set_state(PlaybackState.ACTIVE)
            logger.info("Playing %s", url)
            return session

    async def stop(self) -> None:
        """Stop decoding and power down the amplifier. Idempotent."""

        async with self._lock:
            self._generation += 1
            await self._cancel_opening()
            self._set_state(PlaybackState.STOPPING)
            await self._enter_idle()
            logger.info("Playback stopped")

    async def stream_ended(self, session: StreamSession | None = None) -> None:
        """Decoder reached end of file. Ignored unless ``session`` is still current."""

        async with self._lock:
            if self._state is not PlaybackState.ACTIVE:
                return
            if session is not None and session is not self._session:
                return
            url = self._session.url if self._session else None
            await self._enter_idle()
            logger.info("Stream finished: %s", url)

    async def loop(self) -> bool:
        """Pump one chunk; returns ``True`` while a stream is active.

        A decoder fault ends the stream the same way end of file does.
        """

        session = self._session
        if session is None or self._state is not PlaybackState.ACTIVE:
            return False

        try:
            more = await self._decoder.pump()
        except Exception:
            logger.exception("Decoder failed while pumping %s", session.url)
            more = False
        if more:
            return True
        if session is self._session:
            await self.stream_ended(session)
        return False

    async def run(self, interval_seconds: float) -> None:
        """Pump forever; meant to run as a background task on the device."""

        while True:
            try:
                active = await self.loop()
            except Exception:
                logger.exception("Playback pump iteration failed")
                active = False
            await asyncio.sleep(0 if active else interval_seconds)

    def _set_state(self, state: PlaybackState) -> None:
        self._state = state
        if self._session is not None:
            self._session.state = state

    async def _cancel_opening(self) -> None:
        opening, self._opening = self._opening, None
        if opening is None:
            return
        if not opening.done():
            opening.cancel()
            await asyncio.wait({opening})
        _settle(opening)

    async def _close_decoder(self) -> None:
        try:
            await self._decoder.close()
        except Exception:
            logger.exception("Decoder failed to close cleanly")

    async def _enter_idle(self) -> None:
        await self._close_decoder()
        try:
            self._amplifier.disable()
        finally:
            self._set_state(PlaybackState.IDLE)
            self._session = None


__all__ = [
    "DEFAULT_SWITCH_GRACE_SECONDS",
    "PlaybackController",
    "PlaybackSnapshot",
    "PlaybackState",
    "StreamSession",
]
