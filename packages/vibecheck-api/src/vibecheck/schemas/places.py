"""Schemas for venues, vibe reviews and vibe statistics."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class VibeStyle(BaseModel):
    """How a vibe is rendered."""

    color: str
    icon: str
    intensity: int


class VibeOption(BaseModel):
    """One selectable vibe."""

    name: str
    level: int
    style: VibeStyle


class Place(BaseModel):
    """A venue as stored under ``places/{id}``."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str | None = None
    address: str | None = None
    type: str | None = None
    city: str | None = None
    state: str | None = None
    current_vibe: str | None = Field(
        default=None, validation_alias=AliasChoices("current_vibe", "currentVibe")
    )
    current_vibe_level: int | None = Field(
        default=None, validation_alias=AliasChoices("current_vibe_level", "currentVibeLevel")
    )
    last_review_timestamp: str | None = Field(
        default=None,
        validation_alias=AliasChoices("last_review_timestamp", "lastReviewTimestamp"),
    )


class PlaceResponse(Place):
    """A venue with its rendered vibe style."""

    vibe_style: VibeStyle
    is_high_vibe: bool


class ReviewLocation(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class ReviewCreate(BaseModel):
    """Request body for POST /v1/places/{place_id}/reviews."""

    vibe: str = Field(min_length=1, max_length=64)
    location: ReviewLocation


class Review(BaseModel):
    """A stored review."""

    model_config = ConfigDict(extra="ignore")

    id: str
    place_id: str = Field(validation_alias=AliasChoices("place_id", "placeId"))
    user_id: str = Field(validation_alias=AliasChoices("user_id", "userId"))
    vibe: str
    timestamp: str
    location: ReviewLocation | None = None


class VibeShare(BaseModel):
    vibe: str
    count: int
    percentage: float


class ReviewStats(BaseModel):
    """Vibe breakdown over a place's most recent reviews."""

    place_id: str
    total: int = 0
    recent_vibes: dict[str, int] = Field(default_factory=dict)
    breakdown: list[VibeShare] = Field(default_factory=list)


class UserStats(BaseModel):
    """Review activity of one user."""

    user_id: str
    review_count: int = 0
    last_review: Review | None = None
