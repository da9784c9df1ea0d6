"""Error taxonomy shared by the ingestion pipeline, catalog and device."""

from __future__ import annotations

from fastapi import status


class SpeakerCastError(RuntimeError):
    """Base error carrying the HTTP status it maps to."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR


class IngestionError(SpeakerCastError):
    """Raised when an upload or text request cannot be turned into an artifact."""


class ValidationError(IngestionError):
    """Bad or missing input. Raised before anything touches the filesystem."""

    status_code = status.HTTP_400_BAD_REQUEST


class SynthesisError(IngestionError):
    """The text-to-speech collaborator failed to produce audio."""

    status_code = status.HTTP_502_BAD_GATEWAY


class TranscodeError(IngestionError):
    """The external conversion failed; the diagnostic is opaque."""


class StoreError(IngestionError):
    """Publishing a transcoded artifact to the backend failed."""


class NotFoundError(SpeakerCastError):
    """A catalog operation referenced an artifact that does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class StreamOpenError(SpeakerCastError):
    """The device could not open a playback URL."""


class PlaybackInterruptedError(SpeakerCastError):
    """A stop or a newer play request won while the stream was still opening."""

    status_code = status.HTTP_409_CONFLICT


__all__ = [
    "SpeakerCastError",
    "IngestionError",
    "ValidationError",
    "SynthesisError",
    "TranscodeError",
    "StoreError",
    "NotFoundError",
    "StreamOpenError",
    "PlaybackInterruptedError",
]
