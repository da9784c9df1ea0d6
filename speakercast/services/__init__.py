"""Service layer: storage backends, transcoder, speech synthesis and catalog."""

from .catalog import Catalog, TrackInfo
from .speech import PollySpeechSynthesizer, SynthesisResult
from .storage import (
    Artifact,
    ArtifactStore,
    LocalArtifactStore,
    S3ArtifactStore,
    build_artifact_store,
)
from .transcoder import FfmpegTranscoder, PLAYBACK_PROFILE, TranscodeJob, TranscodeProfile

__all__ = [
    "Artifact",
    "ArtifactStore",
    "LocalArtifactStore",
    "S3ArtifactStore",
    "build_artifact_store",
    "Catalog",
    "TrackInfo",
    "FfmpegTranscoder",
    "PLAYBACK_PROFILE",
    "TranscodeJob",
    "TranscodeProfile",
    "PollySpeechSynthesizer",
    "SynthesisResult",
]
