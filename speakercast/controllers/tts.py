"""Text-to-audio controller: Polly speech pushed through the ingestion pipeline."""

import logging

from fastapi import APIRouter, Request

from speakercast.controllers.dependencies import PipelineDep, public_url
from speakercast.views import ErrorResponse, TextToAudioRequest, TextToAudioResponse

router = APIRouter(prefix="/api", tags=["tts"])

logger = logging.getLogger(__name__)


@router.post(
    "/text-to-audio",
    response_model=TextToAudioResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Blank or oversized text"},
        502: {"model": ErrorResponse, "description": "Speech synthesis failed"},
    },
)
async def text_to_audio(
    payload: TextToAudioRequest,
    request: Request,
    pipeline: PipelineDep,
) -> TextToAudioResponse:
    """Synthesize ``text``, normalize it for the speaker and publish it."""

    result = await pipeline.ingest_text(payload.text, voice_id=payload.voice_id)
    artifact = result.artifact
    request.state.artifact = artifact.identifier
    return TextToAudioResponse(
        message="Text converted to audio successfully",
        url=public_url(request, artifact.url),
        public_id=artifact.public_id,
    )
