"""Story endpoints - the story bar view, its live stream, and posting."""

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from datetime import timedelta

from fastapi import APIRouter, Depends, status
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from vibecheck.config import Settings
from vibecheck.dependencies import (
    get_aggregator,
    get_app_settings,
    get_tree_store,
    get_viewer_id,
    require_viewer,
)
from vibecheck.schemas.stories import StoryCreate, StoryCreateResponse
from vibecheck.schemas.views import ViewModel
from vibecheck.services.aggregation import (
    SnapshotAggregator,
    SnapshotSourceError,
    Subscription,
    compute_view_model,
    now_ms,
)
from vibecheck.services.profiles import get_profile
from vibecheck.services.stories import build_story_record, story_bucket
from vibecheck.services.tree_store import TreeStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/stories", tags=["stories"])


async def view_events(
    subscription: Subscription, keepalive_seconds: float
) -> AsyncIterator[str]:
    """Render a subscription as Server-Sent Events.

    The subscription is cancelled when the stream ends, including when the
    client disconnects.
    """
    try:
        while True:
            try:
                view = await asyncio.wait_for(anext(subscription), timeout=keepalive_seconds)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            except StopAsyncIteration:
                break
            except SnapshotSourceError as exc:
                yield f"event: error\ndata: {json.dumps({'detail': str(exc)})}\n\n"
                continue
            yield f"event: view\ndata: {view.model_dump_json(by_alias=True)}\n\n"
    finally:
        subscription.cancel()


async def _release(subscription: Subscription) -> None:
    subscription.cancel()


@router.get("", response_model=ViewModel)
async def get_stories(
    viewer_id: str | None = Depends(get_viewer_id),
    store: TreeStore = Depends(get_tree_store),
    settings: Settings = Depends(get_app_settings),
) -> ViewModel:
    """Active stories: the viewer's own under ``self``, others newest first.

    Without a viewer there is nothing to show and the view is empty.
    """
    if viewer_id is None:
        return ViewModel()

    profile = await get_profile(store, viewer_id)
    raw_tree = await store.get(settings.stories_path)
    return compute_view_model(raw_tree, viewer_id, now_ms(), profile.avatar)


@router.get("/stream")
async def stream_stories(
    viewer_id: str | None = Depends(get_viewer_id),
    store: TreeStore = Depends(get_tree_store),
    aggregator: SnapshotAggregator = Depends(get_aggregator),
    settings: Settings = Depends(get_app_settings),
) -> StreamingResponse:
    """Live story view; a full replacement view is sent on every change."""
    avatar = (await get_profile(store, viewer_id)).avatar if viewer_id else None
    subscription = await aggregator.subscribe(settings.stories_path, viewer_id, avatar)
    return StreamingResponse(
        view_events(subscription, settings.stream_keepalive_seconds),
        media_type="text/event-stream",
        headers={"X-Accel-Buffering": "no"},
        background=BackgroundTask(_release, subscription),
    )


@router.post(
    "",
    response_model=StoryCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_story(
    body: StoryCreate,
    viewer_id: str = Depends(require_viewer),
    store: TreeStore = Depends(get_tree_store),
    settings: Settings = Depends(get_app_settings),
) -> StoryCreateResponse:
    """Post a story that stays active for ``story_ttl_hours``."""
    profile = await get_profile(store, viewer_id)
    created_at = now_ms()
    record = build_story_record(
        owner_id=viewer_id,
        owner_name=profile.full_name or settings.anonymous_display_name,
        owner_avatar=profile.avatar,
        media_url=body.media_url,
        media_type=body.media_type,
        created_at=created_at,
        ttl=timedelta(hours=settings.story_ttl_hours),
    )
    story_id = await store.push(story_bucket(settings.stories_path, viewer_id), record)
    logger.info("Story %s posted by %s", story_id, viewer_id)

    return StoryCreateResponse(
        id=story_id,
        owner_id=viewer_id,
        created_at=created_at,
        expires_at=record["expiresAt"],
    )
