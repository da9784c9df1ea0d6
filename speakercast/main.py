"""Application entry point and FastAPI app factory."""

from __future__ import annotations

import logging
from pathlib import Path

import uvicorn
from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from fastapi.staticfiles import StaticFiles
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .config.logging import configure_logging
from .config.settings import Settings, settings
from .controllers import tracks, tts
from .middleware import (
    StructuredLoggingMiddleware,
    TelemetryMiddleware,
    register_exception_handlers,
)
from .pipelines.ingest import IngestionPipeline
from .services import (
    Catalog,
    FfmpegTranscoder,
    PollySpeechSynthesizer,
    build_artifact_store,
)

logger = logging.getLogger(__name__)


class PlayableStaticFiles(StaticFiles):
    """Static mount that never serves hidden names (partial writes, the temp dir)."""

    async def get_response(self, path: str, scope):
        if any(part.startswith(".") for part in Path(path).parts):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return await super().get_response(path, scope)


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""

    config = app_settings or settings
    configure_logging(
        log_file=config.log_file,
        debug=config.debug,
        pipeline_log_file=config.pipeline_log_file,
    )

    app = FastAPI(
        title=config.app_name,
        version=config.app_version,
        debug=config.debug,
        description="Audio ingestion and delivery for networked speakers",
    )

    store = build_artifact_store(config)
    pipeline = IngestionPipeline(
        store,
        FfmpegTranscoder(config.transcoder.binary),
        PollySpeechSynthesizer.from_config(config.polly, config.s3),
        temp_dir=config.storage.temp_dir,
        max_upload_bytes=config.storage.max_upload_bytes,
        max_text_length=config.polly.max_text_length,
    )
    app.state.settings = config
    app.state.artifact_store = store
    app.state.catalog = Catalog(store)
    app.state.ingestion_pipeline = pipeline

    app.add_middleware(
        TelemetryMiddleware,
        static_prefix=config.storage.url_prefix if store.backend == "local" else None,
    )
    app.add_middleware(StructuredLoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=config.cors_allow_credentials,
        allow_methods=config.cors_allow_methods,
        allow_headers=config.cors_allow_headers,
    )

    app.include_router(tracks.router)
    app.include_router(tts.router)

    if store.backend == "local":
        app.mount(
            config.storage.url_prefix,
            PlayableStaticFiles(directory=config.storage.uploads_dir),
            name="audio",
        )

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        """Root endpoint."""

        return {
            "message": f"Welcome to {config.app_name}",
            "version": config.app_version,
            "status": "operational",
            "storage": store.backend,
        }

    @app.get("/health", include_in_schema=False)
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""

        return {
            "status": "healthy",
            "service": config.app_name,
            "version": config.app_version,
        }

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Expose application metrics for Prometheus scraping."""

        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    register_exception_handlers(app)

    @app.on_event("startup")
    async def startup_event() -> None:
        await pipeline.purge_stale_temporaries()
        logger.info(
            "Serving %s storage, temp dir %s",
            store.backend,
            pipeline.temp_dir,
        )

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "speakercast.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
