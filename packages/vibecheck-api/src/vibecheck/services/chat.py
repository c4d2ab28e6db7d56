"""Chat rooms - the general room and one room per city."""

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from vibecheck.schemas.chat import ChatAuthor, ChatMessage
from vibecheck.services.tree_store import join_path, validate_key

logger = logging.getLogger(__name__)

GENERAL_ROOM = "generalChat"
REGIONAL_ROOMS = "regionalChats"


def regional_room(state: str, city: str) -> str:
    return join_path(REGIONAL_ROOMS, validate_key(state), validate_key(city))


def _parse_message(message_id: str, raw: Any, anonymous_name: str) -> ChatMessage | None:
    if not isinstance(raw, Mapping):
        return None
    user = raw.get("user")
    created_at = raw.get("createdAt")
    if (
        not raw.get("text")
        or not isinstance(created_at, (int, float))
        or isinstance(created_at, bool)
        or not isinstance(user, Mapping)
        or not user.get("_id")
    ):
        return None
    try:
        return ChatMessage(
            id=message_id,
            text=raw["text"],
            created_at=created_at,
            user=ChatAuthor(id=user["_id"], name=user.get("name") or anonymous_name),
        )
    except ValidationError:
        return None


def materialize_messages(raw_room: Any, limit: int, anonymous_name: str) -> list[ChatMessage]:
    """Valid messages oldest first, keeping only the newest ``limit``."""
    if not isinstance(raw_room, Mapping):
        return []

    messages = []
    for message_id, raw in raw_room.items():
        message = _parse_message(str(message_id), raw, anonymous_name)
        if message is None:
            logger.warning("Skipping malformed message %s", message_id)
            continue
        messages.append(message)

    messages.sort(key=lambda m: (m.created_at, m.id))
    return messages[-limit:] if limit > 0 else []


def build_message(text: str, user_id: str, user_name: str, created_at: int) -> dict[str, Any]:
    return {
        "text": text.strip(),
        "createdAt": created_at,
        "user": {"_id": user_id, "name": user_name},
    }
