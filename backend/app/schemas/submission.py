from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import Literal
from datetime import datetime

MediaType = Literal["photo", "video"]


class MediaItemView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    file_id: str
    media_group_id: str | None = None
    media_type: MediaType
    message_date: int


class DraftView(BaseModel):
    """Draft as seen by review/submit: media holds the current batch only."""
    name: str | None = None
    description: str | None = None
    media_date: int | None = None
    media: list[MediaItemView] = Field(default_factory=list)


class SubmissionView(BaseModel):
    seq: int
    name: str
    description: str | None = None
    submitted_at: datetime
    media: list[MediaItemView] = Field(default_factory=list)
