"""Hardware seams owned by the playback controller.

The controller only talks to three small interfaces: an amplifier enable
line, a stream decoder that pulls remote audio, and the sink the decoded
bytes end up in. Concrete classes cover a Linux board (sysfs GPIO plus an
external player process) and in-memory variants for dry runs.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Sequence
from urllib.parse import urlsplit

import httpx

from speakercast.errors import StreamOpenError

logger = logging.getLogger(__name__)

_ACCEPTED_SCHEMES = {"http", "https"}


class Amplifier(ABC):
    """Speaker amplifier enable line. Must start disabled."""

    @property
    @abstractmethod
    def is_enabled(self) -> bool:
        ...

    @abstractmethod
    def enable(self) -> None:
        ...

    @abstractmethod
    def disable(self) -> None:
        ...


class VirtualAmplifier(Amplifier):
    """In-memory amplifier that records how often it was switched on."""

    def __init__(self) -> None:
        self._enabled = False
        self.enable_count = 0
        self.disable_count = 0

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    def enable(self) -> None:
        self._enabled = True
        self.enable_count += 1

    def disable(self) -> None:
        self._enabled = False
        self.disable_count += 1


class SysfsGpioAmplifier(Amplifier):
    """Drive the enable pin through ``/sys/class/gpio/gpio<N>/value``."""

    def __init__(self, gpio: int, *, root: str | Path = "/sys/class/gpio") -> None:
        self._pin_dir = Path(root) / f"gpio{gpio}"
        self._gpio = gpio
        self._enabled = False
        self._export(Path(root))
        (self._pin_dir / "direction").write_text("out")
        self._write(False)

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    def enable(self) -> None:
        self._write(True)

    def disable(self) -> None:
        self._write(False)

    def _export(self, root: Path) -> None:
        if not self._pin_dir.exists():
            (root / "export").write_text(str(self._gpio))

    def _write(self, high: bool) -> None:
        (self._pin_dir / "value").write_text("1" if high else "0")
        self._enabled = high
        logger.debug("Amplifier gpio%s -> %s", self._gpio, "HIGH" if high else "LOW")


class AudioSink(ABC):
    """Destination for compressed audio pulled off the network."""

    @abstractmethod
    async def open(self) -> None:
        ...

    @abstractmethod
    async def write(self, chunk: bytes) -> None:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...


class NullSink(AudioSink):
    """Discards audio; counts bytes so dry runs can be observed."""

    def __init__(self) -> None:
        self.bytes_written = 0
        self.is_open = False

    async def open(self) -> None:
        self.is_open = True

    async def write(self, chunk: bytes) -> None:
        self.bytes_written += len(chunk)

    async def close(self) -> None:
        self.is_open = False


class CommandSink(AudioSink):
    """Pipe audio into an external decoder/player such as ``mpg123 -q -``."""

    def __init__(self, command: Sequence[str]) -> None:
        self._command = list(command)
        self._process: asyncio.subprocess.Process | None = None

    async def open(self) -> None:
        try:
            self._process = await asyncio.create_subprocess_exec(
                *self._command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            raise StreamOpenError(f"Could not start player {self._command[0]!r}: {exc}") from exc

    async def write(self, chunk: bytes) -> None:
        if self._process is None or self._process.stdin is None:
            raise BrokenPipeError("player is not running")
        self._process.stdin.write(chunk)
        await self._process.stdin.drain()

    async def close(self) -> None:
        process, self._process = self._process, None
        if process is None:
            return
        if process.stdin is not None and not process.stdin.is_closing():
            process.stdin.close()
        if process.returncode is None:
            process.terminate()
        await process.wait()


class StreamDecoder(ABC):
    """Pulls one remote stream at a time into an :class:`AudioSink`."""

    @property
    @abstractmethod
    def is_running(self) -> bool:
        ...

    @abstractmethod
    async def open(self, url: str) -> None:
        """Start streaming ``url`` or raise :class:`StreamOpenError`."""

    @abstractmethod
    async def pump(self) -> bool:
        """Move one chunk to the sink. ``False`` means end of stream."""

    @abstractmethod
    async def close(self) -> None:
        """Release the stream. Safe to call when nothing is open."""


class HttpStreamDecoder(StreamDecoder):
    """Stream an HTTP(S) audio URL chunk by chunk with httpx."""

    def __init__(
        self,
        sink: AudioSink,
        *,
        chunk_size: int = 4096,
        connect_timeout: float = 5.0,
        read_timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._sink = sink
        self._chunk_size = chunk_size
        self._timeout = httpx.Timeout(read_timeout, connect=connect_timeout)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._response: httpx.Response | None = None
        self._chunks = None

    @property
    def is_running(self) -> bool:
        return self._response is not None

    async def open(self, url: str) -> None:
        await self.close()
        if urlsplit(url).scheme.lower() not in _ACCEPTED_SCHEMES:
            raise StreamOpenError(f"Unsupported stream URL: {url}")

        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            follow_redirects=True,
            transport=self._transport,
        )
        try:
            response = await self._client.send(
                self._client.build_request("GET", url), stream=True
            )
        except httpx.HTTPError as exc:
            await self.close()
            raise StreamOpenError(f"Could not connect to {url}: {exc}") from exc

        self._response = response
        if response.status_code >= 400:
            await self.close()
            raise StreamOpenError(f"Stream {url} answered HTTP {response.status_code}")

        self._chunks = response.aiter_bytes(self._chunk_size)
        try:
            await self._sink.open()
        except StreamOpenError:
            await self.close()
            raise
        logger.info("Streaming %s (%s)", url, response.headers.get("content-type", "unknown"))

    async def pump(self) -> bool:
        if self._chunks is None:
            return False
        try:
            chunk = await self._chunks.__anext__()
            await self._sink.write(chunk)
        except StopAsyncIteration:
            return False
        except (httpx.HTTPError, httpx.StreamError, OSError) as exc:
            # A dropped connection or a dead player ends the stream like EOF.
            logger.warning("Stream interrupted: %s", exc)
            return False
        return True

    async def close(self) -> None:
        response, self._response = self._response, None
        client, self._client = self._client, None
        self._chunks = None
        if response is not None:
            await response.aclose()
            await self._sink.close()
        if client is not None:
            await client.aclose()


__all__ = [
    "Amplifier",
    "AudioSink",
    "CommandSink",
    "HttpStreamDecoder",
    "NullSink",
    "StreamDecoder",
    "SysfsGpioAmplifier",
    "VirtualAmplifier",
]
