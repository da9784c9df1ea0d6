"""ffmpeg-backed transcoder producing the speaker's fixed playback profile."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from speakercast.errors import TranscodeError
from speakercast.telemetry import observe_transcode

logger = logging.getLogger(__name__)

_STDERR_TAIL_CHARS = 2000


@dataclass(frozen=True)
class TranscodeProfile:
    """Target codec parameters shared by every job."""

    bitrate: str = "96k"
    channels: int = 1
    sample_rate: int = 44100
    filters: tuple[str, ...] = ("highpass=f=200", "dynaudnorm=f=150:g=15")
    container: str = "mp3"

    @property
    def extension(self) -> str:
        return f".{self.container}"


PLAYBACK_PROFILE = TranscodeProfile()


@dataclass(frozen=True)
class TranscodeJob:
    input_path: Path
    output_path: Path
    profile: TranscodeProfile = field(default=PLAYBACK_PROFILE)


class FfmpegTranscoder:
    """Run ffmpeg as a subprocess and await its single terminal outcome.

    ``run`` either returns the output path or raises :class:`TranscodeError`,
    never both. Failing to spawn the process is raised before anything is
    awaited on it.
    """

    def __init__(self, binary: str = "ffmpeg") -> None:
        self._binary = binary

    def build_command(self, job: TranscodeJob) -> list[str]:
        profile = job.profile
        return [
            self._binary,
            "-hide_banner",
            "-nostdin",
            "-y",
            "-i",
            str(job.input_path),
            "-vn",
            "-ac",
            str(profile.channels),
            "-ar",
            str(profile.sample_rate),
            "-b:a",
            profile.bitrate,
            "-af",
            ",".join(profile.filters),
            "-f",
            profile.container,
            str(job.output_path),
        ]

    async def run(self, job: TranscodeJob) -> Path:
        command = self.build_command(job)
        started = time.perf_counter()
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            logger.error("Could not start transcoder '%s': %s", self._binary, exc)
            raise TranscodeError(f"Could not start transcoder: {exc}") from exc

        try:
            _, stderr = await process.communicate()
        except BaseException:
            # Cancelled request: ffmpeg must not outlive the caller's cleanup.
            if process.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()
            logger.warning("Transcode of %s aborted; ffmpeg killed", job.input_path.name)
            raise
        observe_transcode(time.perf_counter() - started)
        diagnostic = stderr.decode("utf-8", errors="replace")[-_STDERR_TAIL_CHARS:]

        if process.returncode != 0:
            logger.error(
                "ffmpeg exited with %s for %s. stderr: %s",
                process.returncode,
                job.input_path.name,
                diagnostic,
            )
            raise TranscodeError(f"ffmpeg failed ({process.returncode}): {diagnostic}")

        output = Path(job.output_path)
        if not output.is_file() or output.stat().st_size == 0:
            logger.error("ffmpeg produced no output for %s. stderr: %s", job.input_path.name, diagnostic)
            raise TranscodeError("ffmpeg produced an empty output file")

        logger.info(
            "Transcoded %s -> %s (%d bytes)",
            job.input_path.name,
            output.name,
            output.stat().st_size,
        )
        return output


__all__ = ["FfmpegTranscoder", "PLAYBACK_PROFILE", "TranscodeJob", "TranscodeProfile"]
