"""Schemas for materialized per-owner views."""

from pydantic import BaseModel, Field

from vibecheck.schemas.records import RawRecord


class OwnerAggregate(BaseModel):
    """All active records of one owner plus derived display fields."""

    owner_id: str
    display_name: str
    avatar_url: str | None = None
    active_records: list[RawRecord] = Field(min_length=1)
    latest_activity_at: int


class ViewModel(BaseModel):
    """The viewer's own aggregate and everyone else's, newest first.

    Serialized with the key ``self`` for the viewer's own aggregate.
    """

    own: OwnerAggregate | None = Field(default=None, serialization_alias="self")
    others: list[OwnerAggregate] = Field(default_factory=list)
