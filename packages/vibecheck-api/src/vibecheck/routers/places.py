"""Venue endpoints - regional listing, details, vibe stats and reviews."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from vibecheck.config import Settings
from vibecheck.dependencies import (
    get_app_settings,
    get_tree_store,
    get_viewer_id,
    path_segment,
    require_viewer,
)
from vibecheck.schemas.places import (
    Place,
    PlaceResponse,
    Review,
    ReviewCreate,
    ReviewStats,
)
from vibecheck.services.places import (
    PLACES_PATH,
    REVIEWS_PATH,
    build_review_updates,
    compute_review_stats,
    materialize_places,
    parse_place,
    to_place_response,
)
from vibecheck.services.profiles import get_profile
from vibecheck.services.tree_store import TreeStore, join_path
from vibecheck.services.vibes import VIBE_OPTIONS, find_vibe

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/places", tags=["places"])


async def _require_place(store: TreeStore, place_id: str) -> Place:
    place = parse_place(place_id, await store.get(join_path(PLACES_PATH, place_id)))
    if place is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Place not found",
        )
    return place


@router.get("", response_model=list[PlaceResponse])
async def list_places(
    city: str | None = None,
    state: str | None = None,
    viewer_id: str | None = Depends(get_viewer_id),
    store: TreeStore = Depends(get_tree_store),
) -> list[PlaceResponse]:
    """Places in a city, most recently reviewed first.

    The region defaults to the viewer's saved location. Without a region
    the list is empty.
    """
    if (not city or not state) and viewer_id:
        profile = await get_profile(store, viewer_id)
        if profile.location is not None:
            city = city or profile.location.city
            state = state or profile.location.state

    if not city or not state:
        logger.info("No region for place listing (viewer=%s)", viewer_id)
        return []

    return materialize_places(await store.get(PLACES_PATH), city, state)


@router.get("/{place_id}", response_model=PlaceResponse)
async def get_place(
    place_id: str,
    store: TreeStore = Depends(get_tree_store),
) -> PlaceResponse:
    """A single place with its current vibe."""
    place = await _require_place(store, path_segment(place_id, "place id"))
    return to_place_response(place)


@router.get("/{place_id}/vibe-stats", response_model=ReviewStats)
async def get_vibe_stats(
    place_id: str,
    store: TreeStore = Depends(get_tree_store),
    settings: Settings = Depends(get_app_settings),
) -> ReviewStats:
    """Vibe breakdown over the place's most recent reviews."""
    place = await _require_place(store, path_segment(place_id, "place id"))
    raw_reviews = await store.get(REVIEWS_PATH)
    return compute_review_stats(raw_reviews, place.id, settings.review_stats_window)


@router.post(
    "/{place_id}/reviews",
    response_model=Review,
    status_code=status.HTTP_201_CREATED,
)
async def create_review(
    place_id: str,
    body: ReviewCreate,
    viewer_id: str = Depends(require_viewer),
    store: TreeStore = Depends(get_tree_store),
) -> Review:
    """Report the current vibe of a place."""
    vibe = find_vibe(body.vibe)
    if vibe is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid vibe. Use: " + ", ".join(o.name for o in VIBE_OPTIONS),
        )

    place = await _require_place(store, path_segment(place_id, "place id"))
    review_id = store.generate_key()
    updates = build_review_updates(review_id, place.id, viewer_id, vibe, body.location)
    await store.update(updates)
    logger.info("Review %s: %s rated %s as %s", review_id, viewer_id, place.id, vibe.name)

    return Review.model_validate({**updates[join_path(REVIEWS_PATH, review_id)], "id": review_id})
