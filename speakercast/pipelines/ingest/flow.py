"""High-level map of the ingestion pipeline.

``IngestionPipeline.ingest`` in ``ingestion.py`` runs these stages in order.
Every stage after staging is wrapped by the same cleanup, so a failure at any
point leaves no temporary files behind:

1. ``validate`` – reject empty/unsupported uploads and blank text.
2. ``synthesize`` – text requests only; Polly turns text into MP3 bytes.
3. ``stage`` – write the raw bytes under a collision-resistant temp name.
4. ``transcode`` – ffmpeg converts to the fixed speaker profile.
5. ``publish`` – push the transcoded file through the artifact store.
6. ``cleanup`` – delete both temporaries, success or failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List


@dataclass(frozen=True)
class PipelineStage:
    """Human-readable description of one stage in the ingestion pipeline."""

    order: int
    name: str
    module: str
    summary: str


class IngestionFlow:
    """Utility wrapper for documenting the upload and text-to-audio flow."""

    _STAGES: List[PipelineStage] = [
        PipelineStage(
            1,
            "Validation",
            "speakercast.pipelines.ingest.ingestion",
            "Check content type, size and emptiness before touching the disk.",
        ),
        PipelineStage(
            2,
            "Speech Synthesis",
            "speakercast.services.speech",
            "Text requests only: synthesize MP3 bytes with Amazon Polly.",
        ),
        PipelineStage(
            3,
            "Staging",
            "speakercast.pipelines.ingest.ingestion",
            "Write raw bytes to <base>-<token> in the shared temp directory.",
        ),
        PipelineStage(
            4,
            "Transcode",
            "speakercast.services.transcoder",
            "Mono, 44.1 kHz, 96 kbps MP3 with highpass and dynaudnorm filters.",
        ),
        PipelineStage(
            5,
            "Publish",
            "speakercast.services.storage",
            "Put the transcoded file into the local uploads dir or S3.",
        ),
        PipelineStage(
            6,
            "Cleanup",
            "speakercast.pipelines.ingest.ingestion",
            "Remove the raw and transcoded temporaries on every exit path.",
        ),
    ]

    @classmethod
    def describe(cls) -> Iterable[PipelineStage]:
        """Expose the ordered list of stages for debugging and documentation."""

        return tuple(cls._STAGES)


__all__ = ["IngestionFlow", "PipelineStage"]
