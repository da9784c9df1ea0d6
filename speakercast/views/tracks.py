"""Schemas for uploads and the track catalog."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploadSizes(BaseModel):
    original: int
    compressed: int


class UploadResponse(_CamelModel):
    """``compressed_file`` is set for the local backend, ``cloudinary_url`` for the remote one."""

    message: str
    original_name: str
    compressed_file: Optional[str] = None
    cloudinary_url: Optional[str] = None
    public_id: str
    format: str
    size: int
    sizes: UploadSizes


class TrackInfoResponse(_CamelModel):
    filename: str
    size: int
    created_at: datetime
    modified_at: datetime
