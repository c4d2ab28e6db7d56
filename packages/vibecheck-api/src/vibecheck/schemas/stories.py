"""Schemas for posting stories."""

from typing import Literal

from pydantic import BaseModel, Field


class StoryCreate(BaseModel):
    """Request body for POST /v1/stories.

    ``media_url`` is the image host URL returned by POST /v1/media.
    """

    media_url: str = Field(min_length=1, max_length=2048, pattern=r"^https?://")
    media_type: Literal["image"] = "image"


class StoryCreateResponse(BaseModel):
    id: str
    owner_id: str
    created_at: int
    expires_at: int
