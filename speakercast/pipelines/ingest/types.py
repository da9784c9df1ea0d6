"""Typed containers shared across the ingestion pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from speakercast.services.storage import Artifact


class SourceKind(str, Enum):
    UPLOAD = "upload"
    TEXT = "text"


@dataclass(frozen=True)
class RawInput:
    """Bytes (or text to synthesize) for exactly one pipeline invocation."""

    kind: SourceKind
    data: bytes = b""
    filename: str | None = None
    content_type: str | None = None
    text: str | None = None
    voice_id: str | None = None


@dataclass(frozen=True)
class IngestionResult:
    """Published artifact plus what the client originally sent."""

    artifact: Artifact
    original_name: str
    original_size: int

    @property
    def compressed_size(self) -> int:
        return self.artifact.size


__all__ = ["IngestionResult", "RawInput", "SourceKind"]
