"""Audio ingestion pipeline package.

Modules follow the order in which an upload is processed:

1. `types` – RawInput / IngestionResult containers.
2. `ingestion` – validation, staging, transcode, publish and cleanup.
3. `flow` – human-readable description of the end-to-end stages.
"""

from .flow import IngestionFlow, PipelineStage
from .ingestion import IngestionPipeline
from .types import IngestionResult, RawInput, SourceKind

__all__ = [
    "IngestionFlow",
    "IngestionPipeline",
    "IngestionResult",
    "PipelineStage",
    "RawInput",
    "SourceKind",
]
