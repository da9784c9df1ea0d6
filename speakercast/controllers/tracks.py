"""Upload and track catalog endpoints.

For the stage-by-stage map of an upload see
`speakercast.pipelines.ingest.flow.IngestionFlow`. Errors raised by the
pipeline and catalog (`speakercast.errors`) are translated to responses by
`speakercast.middleware.errors.register_exception_handlers`.
"""

import logging
from typing import Optional

from fastapi import APIRouter, File, Request, UploadFile

from speakercast.controllers.dependencies import (
    CatalogDep,
    PipelineDep,
    StoreDep,
    public_url,
)
from speakercast.errors import NotFoundError, ValidationError
from speakercast.views import (
    ErrorResponse,
    MessageResponse,
    TrackInfoResponse,
    UploadResponse,
    UploadSizes,
)

router = APIRouter(prefix="/api", tags=["tracks"])

logger = logging.getLogger(__name__)

_AUDIO_FILE_UPLOAD = File(None, alias="audioFile")

_UPLOAD_ERRORS = {
    400: {"model": ErrorResponse, "description": "Missing, empty, oversized or non-audio upload"},
    500: {"model": ErrorResponse, "description": "Transcoding or publishing failed"},
}
_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Track not found"}}


@router.get("/tracks", response_model=list[str])
async def list_tracks(catalog: CatalogDep) -> list[str]:
    """Return the names of every playable track."""

    return await catalog.list_playable()


@router.post(
    "/upload",
    response_model=UploadResponse,
    response_model_exclude_none=True,
    responses=_UPLOAD_ERRORS,
)
async def upload_audio(
    request: Request,
    pipeline: PipelineDep,
    store: StoreDep,
    audio_file: Optional[UploadFile] = _AUDIO_FILE_UPLOAD,
) -> UploadResponse:
    """Compress an uploaded clip to the speaker profile and publish it."""

    if audio_file is None:
        raise ValidationError("No file uploaded")

    # Read one byte past the limit so oversized uploads are detected without buffering them whole.
    data = await audio_file.read(pipeline.max_upload_bytes + 1)
    await audio_file.close()
    if len(data) > pipeline.max_upload_bytes:
        raise ValidationError("File too large")

    result = await pipeline.ingest_upload(audio_file.filename, audio_file.content_type, data)
    artifact = result.artifact
    request.state.artifact = artifact.identifier
    response = UploadResponse(
        message="Upload & compression successful",
        original_name=result.original_name,
        public_id=artifact.public_id,
        format=artifact.format,
        size=artifact.size,
        sizes=UploadSizes(original=result.original_size, compressed=result.compressed_size),
    )
    if store.backend == "local":
        response.compressed_file = artifact.identifier
    else:
        response.cloudinary_url = public_url(request, artifact.url)
    return response


@router.delete("/tracks/{filename}", response_model=MessageResponse, responses=_NOT_FOUND)
async def delete_track(filename: str, catalog: CatalogDep) -> MessageResponse:
    if not await catalog.remove(filename):
        raise NotFoundError("File not found")
    logger.info("Deleted track %s", filename)
    return MessageResponse(message="File deleted successfully")


@router.get("/tracks/{filename}/info", response_model=TrackInfoResponse, responses=_NOT_FOUND)
async def track_info(filename: str, catalog: CatalogDep) -> TrackInfoResponse:
    """Size and timestamps of a stored track."""

    info = await catalog.info(filename)
    return TrackInfoResponse(
        filename=info.filename,
        size=info.size,
        created_at=info.created_at,
        modified_at=info.modified_at,
    )
