"""Schemas for user profiles and media uploads."""

from pydantic import BaseModel, Field


class UserLocation(BaseModel):
    state: str = Field(min_length=1, max_length=64)
    city: str = Field(min_length=1, max_length=128)


class AvatarUpdate(BaseModel):
    avatar_url: str = Field(min_length=1, max_length=2048, pattern=r"^https?://")


class ProfileResponse(BaseModel):
    user_id: str
    full_name: str | None = None
    avatar: str | None = None
    location: UserLocation | None = None


class MediaUploadResponse(BaseModel):
    url: str
