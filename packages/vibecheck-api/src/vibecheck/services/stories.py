"""Story records - what a posted story looks like in the tree."""

from datetime import timedelta
from typing import Any

from vibecheck.services.tree_store import join_path


def story_bucket(stories_path: str, owner_id: str) -> str:
    return join_path(stories_path, owner_id)


def build_story_record(
    owner_id: str,
    owner_name: str,
    owner_avatar: str | None,
    media_url: str,
    media_type: str,
    created_at: int,
    ttl: timedelta,
) -> dict[str, Any]:
    """A story record expiring ``ttl`` after ``created_at`` (epoch ms)."""
    record = {
        "mediaUrl": media_url,
        "mediaType": media_type,
        "timestamp": created_at,
        "createdAt": created_at,
        "expiresAt": created_at + int(ttl.total_seconds() * 1000),
        "user": {"_id": owner_id, "name": owner_name},
    }
    if owner_avatar:
        record["user"]["avatar"] = owner_avatar
    return record
