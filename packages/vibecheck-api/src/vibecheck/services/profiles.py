"""User profiles stored under ``users/{user_id}``."""

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from vibecheck.schemas.profile import ProfileResponse, UserLocation
from vibecheck.services.tree_store import TreeStore, join_path

USERS_PATH = "users"


def profile_path(user_id: str) -> str:
    return join_path(USERS_PATH, user_id)


def parse_profile(user_id: str, raw: Any) -> ProfileResponse | None:
    if not isinstance(raw, Mapping):
        return None

    location = None
    if isinstance(raw.get("location"), Mapping):
        try:
            location = UserLocation.model_validate(raw["location"])
        except ValidationError:
            location = None

    full_name = raw.get("fullName")
    avatar = raw.get("avatar")
    return ProfileResponse(
        user_id=user_id,
        full_name=full_name if isinstance(full_name, str) and full_name else None,
        avatar=avatar if isinstance(avatar, str) and avatar else None,
        location=location,
    )


async def get_profile(store: TreeStore, user_id: str) -> ProfileResponse:
    """The stored profile, or an empty one for users without a profile node."""
    raw = await store.get(profile_path(user_id))
    return parse_profile(user_id, raw) or ProfileResponse(user_id=user_id)
