"""Venue listing, vibe reviews and review statistics.

Places, reviews and the per-place vibe summary all live in the realtime
tree. Listing and statistics are read-side projections of raw snapshots;
submitting a review is a single multi-path update so the review and the
place summary never disagree.
"""

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from vibecheck.schemas.places import (
    Place,
    PlaceResponse,
    Review,
    ReviewLocation,
    ReviewStats,
    UserStats,
    VibeOption,
    VibeShare,
)
from vibecheck.services.vibes import VIBE_OPTIONS, get_vibe_style, is_high_vibe

logger = logging.getLogger(__name__)

PLACES_PATH = "places"
REVIEWS_PATH = "reviews"


def _timestamp_key(value: str | None) -> float:
    """Epoch seconds of an ISO-8601 timestamp; 0 when missing or unparseable."""
    if not value:
        return 0.0
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return 0.0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def to_place_response(place: Place) -> PlaceResponse:
    return PlaceResponse(
        **place.model_dump(),
        vibe_style=get_vibe_style(place.current_vibe),
        is_high_vibe=is_high_vibe(place.current_vibe),
    )


def parse_place(place_id: str, raw: Any) -> Place | None:
    if not isinstance(raw, Mapping):
        return None
    try:
        return Place.model_validate({**raw, "id": place_id})
    except ValidationError as exc:
        logger.warning("Skipping malformed place %s: %s", place_id, exc)
        return None


def materialize_places(raw_places: Any, city: str | None, state: str | None) -> list[PlaceResponse]:
    """Places of one region, most recently reviewed first."""
    if not city or not state or not isinstance(raw_places, Mapping):
        return []

    places = []
    for place_id, raw in raw_places.items():
        place = parse_place(str(place_id), raw)
        if place is not None and place.city == city and place.state == state:
            places.append(place)

    places.sort(key=lambda p: (-_timestamp_key(p.last_review_timestamp), p.id))
    return [to_place_response(p) for p in places]


def _parse_reviews(raw_reviews: Any) -> list[Review]:
    """Reviews in key order, which is creation order for pushed keys."""
    if not isinstance(raw_reviews, Mapping):
        return []
    reviews = []
    for review_id in sorted(raw_reviews):
        raw = raw_reviews[review_id]
        if not isinstance(raw, Mapping):
            continue
        try:
            reviews.append(Review.model_validate({**raw, "id": review_id}))
        except ValidationError as exc:
            logger.warning("Skipping malformed review %s: %s", review_id, exc)
    return reviews


def compute_review_stats(raw_reviews: Any, place_id: str, window: int) -> ReviewStats:
    """Vibe counts over the last ``window`` reviews of a place."""
    recent = [r for r in _parse_reviews(raw_reviews) if r.place_id == place_id]
    recent = recent[-window:] if window > 0 else []

    counts: dict[str, int] = {}
    for review in recent:
        counts[review.vibe] = counts.get(review.vibe, 0) + 1

    total = len(recent)
    breakdown = [
        VibeShare(
            vibe=option.name,
            count=counts.get(option.name, 0),
            percentage=round(100 * counts.get(option.name, 0) / total, 1) if total else 0.0,
        )
        for option in VIBE_OPTIONS
    ]
    return ReviewStats(place_id=place_id, total=total, recent_vibes=counts, breakdown=breakdown)


def compute_user_stats(raw_reviews: Any, user_id: str) -> UserStats:
    mine = [r for r in _parse_reviews(raw_reviews) if r.user_id == user_id]
    return UserStats(
        user_id=user_id,
        review_count=len(mine),
        last_review=mine[-1] if mine else None,
    )


def build_review_updates(
    review_id: str,
    place_id: str,
    user_id: str,
    vibe: VibeOption,
    location: ReviewLocation,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Multi-path update storing a review and refreshing the place summary."""
    timestamp = (now or datetime.now(timezone.utc)).isoformat()
    return {
        f"{REVIEWS_PATH}/{review_id}": {
            "placeId": place_id,
            "userId": user_id,
            "vibe": vibe.name,
            "timestamp": timestamp,
            "location": location.model_dump(),
        },
        f"{PLACES_PATH}/{place_id}/currentVibe": vibe.name,
        f"{PLACES_PATH}/{place_id}/currentVibeLevel": vibe.level,
        f"{PLACES_PATH}/{place_id}/lastReviewTimestamp": timestamp,
    }
