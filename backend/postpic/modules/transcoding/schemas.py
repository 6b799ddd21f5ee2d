"""Pydantic schemas for the rendition pipeline."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from postpic.modules.transcoding.models import PipelineState


class Manifest(BaseModel):
    """Result of a successful upload run.

    ``rendition_urls`` and ``poster_urls`` line up one-to-one with
    ``available_heights``. ``subtitle_url`` may point at a file that is still
    being written.
    """
    asset_id: str
    available_heights: list[int] = Field(default_factory=list, description="Rendition heights, best first")
    rendition_urls: list[str] = Field(default_factory=list)
    poster_urls: list[str] = Field(default_factory=list)
    primary_rendition_url: Optional[str] = Field(None, description="Highest available rendition")
    default_poster_url: str
    subtitle_url: str


class PipelineStatusEvent(BaseModel):
    """A state transition published to status subscribers."""
    asset_id: str
    state: PipelineState
    detail: Optional[str] = None
    timestamp: datetime


class PipelineErrorResponse(BaseModel):
    """Error body returned by the upload endpoint."""
    detail: str
    error: str
    asset_id: Optional[str] = None
