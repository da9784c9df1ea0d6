"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from speakercast.pipelines.ingest import IngestionPipeline
from speakercast.services import ArtifactStore, Catalog


def get_artifact_store(request: Request) -> ArtifactStore:
    return request.app.state.artifact_store


def get_ingestion_pipeline(request: Request) -> IngestionPipeline:
    return request.app.state.ingestion_pipeline


def get_catalog(request: Request) -> Catalog:
    return request.app.state.catalog


def public_url(request: Request, url: str) -> str:
    """Make store-relative URLs (``/audio/x.mp3``) absolute for remote clients."""

    if url.startswith("/"):
        return str(request.base_url).rstrip("/") + url
    return url


StoreDep = Annotated[ArtifactStore, Depends(get_artifact_store)]
PipelineDep = Annotated[IngestionPipeline, Depends(get_ingestion_pipeline)]
CatalogDep = Annotated[Catalog, Depends(get_catalog)]
