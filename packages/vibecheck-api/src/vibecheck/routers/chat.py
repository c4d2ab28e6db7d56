"""Chat endpoints - the general room and regional rooms."""

from fastapi import APIRouter, Depends, HTTPException, status

from vibecheck.config import Settings
from vibecheck.dependencies import (
    get_app_settings,
    get_tree_store,
    path_segment,
    require_viewer,
)
from vibecheck.schemas.chat import ChatAuthor, ChatMessage, ChatRoomResponse, MessageCreate
from vibecheck.services.aggregation import now_ms
from vibecheck.services.chat import (
    GENERAL_ROOM,
    build_message,
    materialize_messages,
    regional_room,
)
from vibecheck.services.profiles import get_profile
from vibecheck.services.tree_store import TreeStore

router = APIRouter(prefix="/v1/chats", tags=["chat"])


def _regional_room(state: str, city: str) -> str:
    return regional_room(path_segment(state, "state"), path_segment(city, "city"))


async def _read_room(store: TreeStore, room: str, settings: Settings) -> ChatRoomResponse:
    messages = materialize_messages(
        await store.get(room),
        limit=settings.chat_history_limit,
        anonymous_name=settings.anonymous_display_name,
    )
    return ChatRoomResponse(room=room, messages=messages)


async def _post_message(
    store: TreeStore,
    room: str,
    viewer_id: str,
    body: MessageCreate,
    settings: Settings,
) -> ChatMessage:
    if not body.text.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Message text is empty",
        )

    profile = await get_profile(store, viewer_id)
    name = profile.full_name or settings.anonymous_display_name
    message = build_message(body.text, viewer_id, name, now_ms())
    message_id = await store.push(room, message)

    return ChatMessage(
        id=message_id,
        text=message["text"],
        created_at=message["createdAt"],
        user=ChatAuthor(id=viewer_id, name=name),
    )


@router.get("/general", response_model=ChatRoomResponse)
async def get_general_chat(
    store: TreeStore = Depends(get_tree_store),
    settings: Settings = Depends(get_app_settings),
) -> ChatRoomResponse:
    """Recent messages of the general room, oldest first."""
    return await _read_room(store, GENERAL_ROOM, settings)


@router.post(
    "/general",
    response_model=ChatMessage,
    status_code=status.HTTP_201_CREATED,
)
async def post_general_chat(
    body: MessageCreate,
    viewer_id: str = Depends(require_viewer),
    store: TreeStore = Depends(get_tree_store),
    settings: Settings = Depends(get_app_settings),
) -> ChatMessage:
    return await _post_message(store, GENERAL_ROOM, viewer_id, body, settings)


@router.get("/regional/{state}/{city}", response_model=ChatRoomResponse)
async def get_regional_chat(
    state: str,
    city: str,
    store: TreeStore = Depends(get_tree_store),
    settings: Settings = Depends(get_app_settings),
) -> ChatRoomResponse:
    """Recent messages of one city's room, oldest first."""
    return await _read_room(store, _regional_room(state, city), settings)


@router.post(
    "/regional/{state}/{city}",
    response_model=ChatMessage,
    status_code=status.HTTP_201_CREATED,
)
async def post_regional_chat(
    state: str,
    city: str,
    body: MessageCreate,
    viewer_id: str = Depends(require_viewer),
    store: TreeStore = Depends(get_tree_store),
    settings: Settings = Depends(get_app_settings),
) -> ChatMessage:
    return await _post_message(store, _regional_room(state, city), viewer_id, body, settings)
