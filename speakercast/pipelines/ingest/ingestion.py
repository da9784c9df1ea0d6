"""Upload/text ingestion: validate, stage, transcode, publish, clean up."""

from __future__ import annotations

import logging
import mimetypes
import re
from pathlib import Path
from typing import Final
from uuid import uuid4

from fastapi.concurrency import run_in_threadpool

from speakercast.errors import IngestionError, ValidationError
from speakercast.services.speech import PollySpeechSynthesizer
from speakercast.services.storage import ArtifactStore
from speakercast.services.transcoder import PLAYBACK_PROFILE, FfmpegTranscoder, TranscodeJob
from speakercast.telemetry import observe_ingestion

from .types import IngestionResult, RawInput, SourceKind

logger = logging.getLogger("speakercast.pipelines.ingest")

_BINARY_CONTENT_TYPE: Final[str] = "application/octet-stream"
_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9_-]+")
_MAX_BASE_NAME: Final[int] = 64
_TTS_BASE_NAME: Final[str] = "tts"


def _base_name(filename: str | None) -> str:
    """Filesystem-safe stem of a user-supplied name (``My Song!.wav`` -> ``My_Song``)."""

    stem = Path(filename or "").stem
    cleaned = _UNSAFE_NAME_CHARS.sub("_", stem).strip("_-")
    return cleaned[:_MAX_BASE_NAME] or "audio"


def _resolve_content_type(raw: RawInput) -> str:
    content_type = (raw.content_type or "").split(";", 1)[0].strip().lower()
    if not content_type and raw.filename:
        guessed_type, _ = mimetypes.guess_type(raw.filename)
        content_type = guessed_type or ""
    return content_type


class IngestionPipeline:
    """Turn an upload or a text prompt into exactly one published artifact.

    Each call owns its temporaries. Names carry a random token so concurrent
    calls sharing ``temp_dir`` never collide; there is no cross-call locking.
    """

    def __init__(
        self,
        store: ArtifactStore,
        transcoder: FfmpegTranscoder,
        synthesizer: PollySpeechSynthesizer | None = None,
        *,
        temp_dir: str | Path,
        max_upload_bytes: int = 50 * 1024 * 1024,
        max_text_length: int = 3000,
    ) -> None:
        self._store = store
        self._transcoder = transcoder
        self._synthesizer = synthesizer
        self._temp_dir = Path(temp_dir)
        self._max_upload_bytes = max_upload_bytes
        self._max_text_length = max_text_length

    @property
    def temp_dir(self) -> Path:
        return self._temp_dir

    @property
    def max_upload_bytes(self) -> int:
        return self._max_upload_bytes

    async def ingest_upload(
        self,
        filename: str | None,
        content_type: str | None,
        data: bytes,
    ) -> IngestionResult:
        return await self.ingest(
            RawInput(
                kind=SourceKind.UPLOAD,
                data=data,
                filename=filename,
                content_type=content_type,
            )
        )

    async def ingest_text(self, text: str | None, *, voice_id: str | None = None) -> IngestionResult:
        return await self.ingest(RawInput(kind=SourceKind.TEXT, text=text, voice_id=voice_id))

    async def ingest(self, raw: RawInput) -> IngestionResult:
        try:
            result = await self._run(raw)
        except IngestionError as exc:
            observe_ingestion(raw.kind.value, type(exc).__name__)
            raise
        except Exception:
            observe_ingestion(raw.kind.value, "unexpected")
            raise
        observe_ingestion(raw.kind.value, "published")
        return result

    def validate(self, raw: RawInput) -> None:
        """Raise :class:`ValidationError` for input that must not reach the disk."""

        if raw.kind is SourceKind.TEXT:
            text = (raw.text or "").strip()
            if not text:
                raise ValidationError("Text is required")
            if len(text) > self._max_text_length:
                raise ValidationError(
                    f"Text exceeds the {self._max_text_length} character limit"
                )
            return

        if not raw.data:
            raise ValidationError("Uploaded audio file is empty")
        content_type = _resolve_content_type(raw)
        if not (content_type.startswith("audio/") or content_type == _BINARY_CONTENT_TYPE):
            logger.info("Rejected file type: %s", content_type or "<missing>")
            raise ValidationError("Only audio files are allowed!")
        if len(raw.data) > self._max_upload_bytes:
            raise ValidationError("File too large")

    async def purge_stale_temporaries(self) -> int:
        """Delete leftovers from a previous process; call before serving requests."""

        return await run_in_threadpool(self._purge_sync)

    async def _run(self, raw: RawInput) -> IngestionResult:
        self.validate(raw)

        if raw.kind is SourceKind.TEXT:
            if self._synthesizer is None:
                raise IngestionError("Speech synthesis is not configured")
            synthesis = await self._synthesizer.synthesize(
                (raw.text or "").strip(), voice_id=raw.voice_id
            )
            payload = synthesis.audio_bytes
            base = _TTS_BASE_NAME
            original_name = f"{_TTS_BASE_NAME}{PLAYBACK_PROFILE.extension}"
            logger.info("Synthesized %d bytes with voice %s", len(payload), synthesis.voice_id)
        else:
            payload = raw.data
            base = _base_name(raw.filename)
            original_name = raw.filename or base

        public_id = f"{base}-{uuid4().hex}"
        raw_path = self._temp_dir / public_id
        output_path = self._temp_dir / f"{public_id}{PLAYBACK_PROFILE.extension}"

        try:
            await run_in_threadpool(self._stage, raw_path, payload)
            await self._transcoder.run(TranscodeJob(raw_path, output_path))
            artifact = await self._store.put(output_path, public_id, display_name=original_name)
        except IngestionError as exc:
            logger.error("Ingestion of %s failed: %s", original_name, exc)
            raise
        finally:
            await run_in_threadpool(self._discard, raw_path, output_path)

        logger.info(
            "Published %s as %s (%d -> %d bytes) via %s",
            original_name,
            artifact.identifier,
            len(payload),
            artifact.size,
            self._store.backend,
        )
        return IngestionResult(
            artifact=artifact,
            original_name=original_name,
            original_size=len(payload),
        )

    def _stage(self, path: Path, payload: bytes) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(payload)
        except OSError as exc:
            raise IngestionError(f"Could not stage upload: {exc}") from exc

    @staticmethod
    def _discard(*paths: Path) -> None:
        for path in paths:
            try:
                path.unlink(missing_ok=True)
            except OSError:
                logger.warning("Could not remove temporary file %s", path, exc_info=True)

    def _purge_sync(self) -> int:
        if not self._temp_dir.is_dir():
            return 0
        removed = 0
        for path in self._temp_dir.iterdir():
            if path.is_file():
                path.unlink(missing_ok=True)
                removed += 1
        if removed:
            logger.info("Removed %d stale temporary files from %s", removed, self._temp_dir)
        return removed


__all__ = ["IngestionPipeline"]
