"""Amazon Polly text-to-speech used by the text ingestion path."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from speakercast.config.settings import PollyConfig, S3Config
from speakercast.errors import SynthesisError
from speakercast.services.aws import create_boto3_client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SynthesisResult:
    """Raw synthesized speech, not yet normalized for the speaker."""

    audio_bytes: bytes
    media_type: str
    voice_id: str


class PollySpeechSynthesizer:
    """Turn text into MP3 bytes using Amazon Polly."""

    def __init__(
        self,
        client: Any,
        *,
        default_voice_id: str = "Joanna",
        engine: str = "neural",
    ) -> None:
        self._client = client
        self._default_voice_id = default_voice_id
        self._engine = engine

    @classmethod
    def from_config(
        cls,
        config: PollyConfig,
        credentials: S3Config | None = None,
    ) -> "PollySpeechSynthesizer":
        return cls(
            create_boto3_client("polly", region_name=config.region, credentials=credentials),
            default_voice_id=config.default_voice_id,
            engine=config.engine,
        )

    async def synthesize(self, text: str, *, voice_id: str | None = None) -> SynthesisResult:
        voice = voice_id or self._default_voice_id
        try:
            response: dict[str, Any] = await run_in_threadpool(
                self._client.synthesize_speech,
                Text=text,
                VoiceId=voice,
                Engine=self._engine,
                OutputFormat="mp3",
            )
        except (BotoCoreError, ClientError) as exc:
            logger.exception("Polly synth failed for voice '%s'", voice)
            raise SynthesisError(f"Failed to synthesize speech: {exc}") from exc

        audio_stream = response.get("AudioStream")
        if audio_stream is None:
            raise SynthesisError("Polly returned no audio stream.")
        try:
            audio_bytes = await run_in_threadpool(audio_stream.read)
        finally:
            audio_stream.close()
        if not audio_bytes:
            raise SynthesisError("Polly returned an empty audio stream.")

        return SynthesisResult(
            audio_bytes=audio_bytes,
            media_type=response.get("ContentType", "audio/mpeg"),
            voice_id=voice,
        )


__all__ = ["PollySpeechSynthesizer", "SynthesisResult"]
