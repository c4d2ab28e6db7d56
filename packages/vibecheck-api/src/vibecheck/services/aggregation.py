"""Story aggregation - materializes per-owner views from raw tree snapshots.

The realtime tree delivers ``owner_id -> record_id -> record`` snapshots.
Every snapshot is projected from scratch into a ``ViewModel``: expired and
malformed records dropped, records grouped per owner, the viewer's own
aggregate split out, everyone else sorted newest first. Nothing derived here
is ever written back.
"""

import asyncio
import logging
import time
from collections import deque
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Protocol

from vibecheck.schemas.records import RawRecord
from vibecheck.schemas.views import OwnerAggregate, ViewModel

logger = logging.getLogger(__name__)

MalformedCallback = Callable[[str, str, str], None]


class SnapshotSourceError(Exception):
    """A snapshot of ``path`` could not be read from the source."""

    def __init__(self, path: str, message: str = "snapshot read failed") -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


class SnapshotSource(Protocol):
    """Realtime tree consumed by the aggregator."""

    async def subscribe(
        self,
        path: str,
        on_change: Callable[[Any], None],
        on_error: Callable[[SnapshotSourceError], None] | None = None,
    ) -> int: ...

    def unsubscribe(self, path: str, handle: int) -> None: ...


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def fallback_display_name(owner_id: str) -> str:
    return f"User {owner_id[:4]}"


def _log_malformed(owner_id: str, record_id: str, reason: str) -> None:
    logger.debug("Skipping malformed record %s/%s: %s", owner_id, record_id, reason)


def _aggregate_owner(
    owner_id: str,
    bucket: Any,
    viewer_id: str | None,
    now: int,
    viewer_fallback_avatar: str | None,
    on_malformed: MalformedCallback,
) -> OwnerAggregate | None:
    if not isinstance(bucket, Mapping):
        on_malformed(owner_id, "", "owner bucket is not a mapping")
        return None

    active: list[RawRecord] = []
    owner = None
    for record_id, raw in bucket.items():
        try:
            if not isinstance(raw, Mapping):
                raise TypeError("record is not a mapping")
            record = RawRecord.model_validate(
                {**raw, "id": str(record_id), "owner_id": owner_id}
            )
        except (TypeError, ValueError) as exc:
            on_malformed(owner_id, str(record_id), str(exc))
            continue

        if record.expires_at is None or record.expires_at <= now:
            continue
        active.append(record)
        if owner is None and record.user is not None:
            owner = record.user

    if not active:
        return None

    active.sort(key=lambda r: (r.created_at, r.id))
    display_name = (owner.name if owner else None) or fallback_display_name(owner_id)
    avatar_url = owner.avatar if owner else None
    if not avatar_url and owner_id == viewer_id:
        avatar_url = viewer_fallback_avatar

    return OwnerAggregate(
        owner_id=owner_id,
        display_name=display_name,
        avatar_url=avatar_url or None,
        active_records=active,
        latest_activity_at=active[-1].created_at,
    )


def compute_view_model(
    raw_tree: Any,
    viewer_id: str | None,
    now: int,
    viewer_fallback_avatar: str | None = None,
    on_malformed: MalformedCallback | None = None,
) -> ViewModel:
    """Project one raw snapshot into a ViewModel.

    Pure: same inputs, structurally equal output. Bad data never raises;
    it is reported through ``on_malformed(owner_id, record_id, reason)``.
    """
    report = on_malformed or _log_malformed
    if raw_tree is None:
        return ViewModel()
    if not isinstance(raw_tree, Mapping):
        report("", "", "snapshot root is not a mapping")
        return ViewModel()

    own = None
    others = []
    for owner_id, bucket in raw_tree.items():
        aggregate = _aggregate_owner(
            str(owner_id), bucket, viewer_id, now, viewer_fallback_avatar, report
        )
        if aggregate is None:
            continue
        if viewer_id and aggregate.owner_id == viewer_id:
            own = aggregate
        else:
            others.append(aggregate)

    others.sort(key=lambda a: (-a.latest_activity_at, a.owner_id))
    return ViewModel(own=own, others=others)


class Subscription:
    """One consumer's stream of ViewModels.

    Iterate with ``async for``. A source failure is raised from iteration as
    ``SnapshotSourceError``; the subscription stays live and iteration may
    resume. A view not yet consumed is replaced by a newer one. After
    ``cancel()`` nothing more is delivered and iteration stops. If the source
    could not be attached at all, ``abort()`` delivers one final error.
    """

    def __init__(
        self,
        viewer_id: str | None,
        viewer_fallback_avatar: str | None = None,
        on_cancel: Callable[["Subscription"], None] | None = None,
    ) -> None:
        self.viewer_id = viewer_id
        self.viewer_fallback_avatar = viewer_fallback_avatar
        self.latest: ViewModel | None = None
        self._on_cancel = on_cancel
        self._pending: deque[ViewModel | SnapshotSourceError] = deque()
        self._ready = asyncio.Event()
        self._cancelled = False
        self._closed = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def emit(self, view: ViewModel) -> None:
        if self._cancelled or self._closed:
            return
        self.latest = view
        self._pending = deque(
            item for item in self._pending if isinstance(item, SnapshotSourceError)
        )
        self._pending.append(view)
        self._ready.set()

    def fail(self, error: SnapshotSourceError) -> None:
        if self._cancelled or self._closed:
            return
        self._pending.append(error)
        self._ready.set()

    def abort(self, error: SnapshotSourceError) -> None:
        """Deliver a final error; iteration stops once it has been raised."""
        if self._cancelled or self._closed:
            return
        self._closed = True
        self._on_cancel = None
        self._pending.append(error)
        self._ready.set()

    def cancel(self) -> None:
        """Stop the stream. Calling it again is a no-op."""
        if self._cancelled:
            return
        self._cancelled = True
        self._pending.clear()
        self._ready.set()
        on_cancel, self._on_cancel = self._on_cancel, None
        if on_cancel is not None:
            on_cancel(self)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> ViewModel:
        while not self._pending:
            if self._cancelled or self._closed:
                raise StopAsyncIteration
            self._ready.clear()
            await self._ready.wait()
        item = self._pending.popleft()
        if isinstance(item, SnapshotSourceError):
            raise item
        return item


@dataclass
class _PathFeed:
    path: str
    handle: int | None = None
    tree: Any = None
    has_snapshot: bool = False
    subscribers: list[Subscription] = field(default_factory=list)


class SnapshotAggregator:
    """Fans one source listener per path out to many viewer subscriptions."""

    def __init__(
        self,
        source: SnapshotSource,
        clock: Callable[[], int] = now_ms,
        on_malformed: MalformedCallback | None = None,
    ) -> None:
        self._source = source
        self._clock = clock
        self._on_malformed = on_malformed
        self._feeds: dict[str, _PathFeed] = {}

    def compute_view_model(self, raw_tree: Any, subscription: Subscription) -> ViewModel:
        return compute_view_model(
            raw_tree,
            subscription.viewer_id,
            self._clock(),
            subscription.viewer_fallback_avatar,
            self._on_malformed,
        )

    async def subscribe(
        self,
        source_path: str,
        viewer_id: str | None,
        viewer_fallback_avatar: str | None = None,
    ) -> Subscription:
        """Start streaming ViewModels of ``source_path`` for one viewer.

        Without a viewer an empty view is emitted and the source is not
        touched. Cancel the returned subscription to stop it.
        """
        if not viewer_id:
            subscription = Subscription(None, viewer_fallback_avatar)
            subscription.emit(ViewModel())
            return subscription

        subscription = Subscription(
            viewer_id, viewer_fallback_avatar, on_cancel=partial(self._detach, source_path)
        )
        feed = self._feeds.get(source_path)
        if feed is not None:
            feed.subscribers.append(subscription)
            if feed.has_snapshot:
                subscription.emit(self.compute_view_model(feed.tree, subscription))
            return subscription

        feed = _PathFeed(source_path, subscribers=[subscription])
        self._feeds[source_path] = feed
        try:
            handle = await self._source.subscribe(
                source_path,
                partial(self._on_snapshot, feed),
                partial(self._on_error, feed),
            )
        except Exception as exc:
            if self._feeds.get(source_path) is feed:
                del self._feeds[source_path]
            error = SnapshotSourceError(source_path, str(exc))
            for other in feed.subscribers:
                if other is not subscription:
                    other.abort(error)
            raise

        if self._feeds.get(source_path) is feed:
            feed.handle = handle
        else:
            # Every subscriber cancelled while the listener was being attached.
            self._source.unsubscribe(source_path, handle)
        return subscription

    def close(self) -> None:
        """Cancel every live subscription and detach from the source."""
        for feed in list(self._feeds.values()):
            for subscription in list(feed.subscribers):
                subscription.cancel()

    def _on_snapshot(self, feed: _PathFeed, raw_tree: Any) -> None:
        feed.tree = raw_tree
        feed.has_snapshot = True
        for subscription in list(feed.subscribers):
            subscription.emit(self.compute_view_model(raw_tree, subscription))

    def _on_error(self, feed: _PathFeed, error: SnapshotSourceError) -> None:
        logger.error("Snapshot source failed for %s: %s", feed.path, error)
        for subscription in list(feed.subscribers):
            subscription.fail(error)

    def _detach(self, source_path: str, subscription: Subscription) -> None:
        feed = self._feeds.get(source_path)
        if feed is None or subscription not in feed.subscribers:
            return
        feed.subscribers.remove(subscription)
        if feed.subscribers:
            return
        del self._feeds[source_path]
        if feed.handle is not None:
            self._source.unsubscribe(source_path, feed.handle)
