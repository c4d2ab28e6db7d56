"""User profile endpoints - location, avatar and review activity."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from vibecheck.dependencies import get_tree_store, path_segment, require_self
from vibecheck.schemas.places import UserStats
from vibecheck.schemas.profile import AvatarUpdate, ProfileResponse, UserLocation
from vibecheck.services.places import REVIEWS_PATH, compute_user_stats
from vibecheck.services.profiles import get_profile, parse_profile, profile_path
from vibecheck.services.tree_store import TreeStore, join_path

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/users", tags=["users"])


@router.get("/{user_id}", response_model=ProfileResponse)
async def get_user(
    user_id: str,
    store: TreeStore = Depends(get_tree_store),
) -> ProfileResponse:
    """Public profile fields of a user."""
    user_id = path_segment(user_id, "user id")
    profile = parse_profile(user_id, await store.get(profile_path(user_id)))
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return profile


@router.get("/{user_id}/stats", response_model=UserStats)
async def get_user_stats(
    user_id: str,
    store: TreeStore = Depends(get_tree_store),
) -> UserStats:
    """How many reviews a user has posted, and the latest one."""
    user_id = path_segment(user_id, "user id")
    return compute_user_stats(await store.get(REVIEWS_PATH), user_id)


@router.put("/{user_id}/location", response_model=ProfileResponse)
async def update_location(
    body: UserLocation,
    user_id: str = Depends(require_self),
    store: TreeStore = Depends(get_tree_store),
) -> ProfileResponse:
    """Save the region whose places and chat the user sees."""
    await store.set(join_path(profile_path(user_id), "location"), body.model_dump())
    logger.info("User %s moved to %s/%s", user_id, body.state, body.city)
    return await get_profile(store, user_id)


@router.put("/{user_id}/avatar", response_model=ProfileResponse)
async def update_avatar(
    body: AvatarUpdate,
    user_id: str = Depends(require_self),
    store: TreeStore = Depends(get_tree_store),
) -> ProfileResponse:
    """Point the user's avatar at an uploaded image."""
    await store.set(join_path(profile_path(user_id), "avatar"), body.avatar_url)
    return await get_profile(store, user_id)
