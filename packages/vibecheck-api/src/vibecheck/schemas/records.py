"""Schemas for raw records read from the realtime tree."""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

_TIMESTAMP_FIELDS = ("createdAt", "created_at", "timestamp")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class OwnerMeta(BaseModel):
    """Owner details denormalized into each record at write time."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = Field(default=None, validation_alias=AliasChoices("id", "_id"))
    name: str | None = None
    avatar: str | None = None


class RawRecord(BaseModel):
    """One posted item (story, message) as stored under an owner bucket.

    ``id`` and ``owner_id`` come from the tree keys, not the record body.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    owner_id: str = Field(validation_alias=AliasChoices("owner_id", "ownerId"))
    media_url: str | None = Field(
        default=None, validation_alias=AliasChoices("media_url", "mediaUrl")
    )
    media_type: str | None = Field(
        default=None, validation_alias=AliasChoices("media_type", "mediaType")
    )
    text: str | None = None
    created_at: int = Field(validation_alias=AliasChoices("created_at", "createdAt"))
    expires_at: int | None = Field(
        default=None, validation_alias=AliasChoices("expires_at", "expiresAt")
    )
    user: OwnerMeta | None = None

    @model_validator(mode="before")
    @classmethod
    def _pick_creation_time(cls, data: Any) -> Any:
        # Server timestamps may still be placeholders; use the first numeric one.
        if not isinstance(data, dict):
            return data
        for field in _TIMESTAMP_FIELDS:
            if _is_number(data.get(field)):
                return {**data, "created_at": data[field]}
        return data

    @field_validator("created_at", "expires_at", mode="before")
    @classmethod
    def _reject_bool(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("timestamps must be numbers, not booleans")
        return value

    @model_validator(mode="after")
    def _require_payload(self) -> "RawRecord":
        if not (self.media_url or self.text):
            raise ValueError("record has no mediaUrl or text payload")
        return self
