"""Schemas for text-to-audio requests."""

from typing import Optional

from pydantic import BaseModel


class TextToAudioRequest(BaseModel):
    text: Optional[str] = None
    voice_id: Optional[str] = None


class TextToAudioResponse(BaseModel):
    message: str
    url: str
    public_id: str
