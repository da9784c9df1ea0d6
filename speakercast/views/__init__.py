"""Pydantic schemas used as views in the MVC architecture."""

from .common import ErrorResponse, MessageResponse
from .tracks import TrackInfoResponse, UploadResponse, UploadSizes
from .tts import TextToAudioRequest, TextToAudioResponse

__all__ = [
    "ErrorResponse",
    "MessageResponse",
    "TrackInfoResponse",
    "UploadResponse",
    "UploadSizes",
    "TextToAudioRequest",
    "TextToAudioResponse",
]
