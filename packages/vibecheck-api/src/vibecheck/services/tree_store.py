"""Realtime tree store - hierarchical JSON documents with change listeners.

The tree is persisted as one ``tree_nodes`` row per scalar leaf, keyed by
its slash-separated path. Reads rebuild the nested structure below a path;
writes replace whole subtrees and then push a fresh snapshot to every
listener whose path overlaps what was written.
"""

import itertools
import logging
import re
import secrets
from collections.abc import Callable, Iterator, Mapping
from typing import Any

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vibecheck.models.tree_node import TreeNode
from vibecheck.services.aggregation import SnapshotSourceError, now_ms

logger = logging.getLogger(__name__)

PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"
MAX_PATH_LENGTH = 768

_INVALID_KEY = re.compile(r"[.$#\[\]/\x00-\x1f\x7f]")

OnChange = Callable[[Any], None]
OnError = Callable[[SnapshotSourceError], None]


class InvalidPathError(ValueError):
    """A path or key cannot be stored in the tree."""


def validate_key(key: str) -> str:
    if not isinstance(key, str) or not key:
        raise InvalidPathError("keys must be non-empty strings")
    if _INVALID_KEY.search(key):
        raise InvalidPathError(f"key {key!r} contains a forbidden character")
    return key


def normalize_path(path: str) -> str:
    """Strip surrounding slashes and validate every segment.

    The empty string is the root.
    """
    path = path.strip("/")
    if not path:
        return ""
    for segment in path.split("/"):
        validate_key(segment)
    if len(path.encode("utf-8")) > MAX_PATH_LENGTH:
        raise InvalidPathError("path is too long")
    return path


def join_path(*segments: str) -> str:
    return "/".join(s.strip("/") for s in segments if s.strip("/"))


def _paths_overlap(a: str, b: str) -> bool:
    if not a or not b or a == b:
        return True
    return a.startswith(b + "/") or b.startswith(a + "/")


def _ancestors(path: str) -> list[str]:
    parts = path.split("/")
    return ["/".join(parts[:i]) for i in range(1, len(parts))]


def _flatten(path: str, value: Any) -> Iterator[tuple[str, Any]]:
    if value is None:
        return
    if isinstance(value, Mapping):
        for key, child in value.items():
            yield from _flatten(join_path(path, validate_key(str(key))), child)
    elif isinstance(value, (list, tuple)):
        for index, child in enumerate(value):
            yield from _flatten(join_path(path, str(index)), child)
    elif isinstance(value, (str, int, float, bool)):
        if not path:
            raise InvalidPathError("cannot store a scalar at the root")
        yield path, value
    else:
        raise TypeError(f"cannot store value of type {type(value).__name__}")


def _build_tree(path: str, rows: list[tuple[str, Any]]) -> Any:
    if not rows:
        return None
    tree: dict[str, Any] = {}
    offset = len(path) + 1 if path else 0
    for row_path, value in rows:
        if row_path == path:
            return value
        node = tree
        *parents, leaf = row_path[offset:].split("/")
        for key in parents:
            child = node.get(key)
            if not isinstance(child, dict):
                child = node[key] = {}
            node = child
        node[leaf] = value
    return tree


class PushIdGenerator:
    """Chronologically sortable 20-character keys.

    Eight characters encode the millisecond timestamp, twelve are random.
    Keys generated within the same millisecond increment the random part
    so they still sort in creation order.
    """

    def __init__(self, clock: Callable[[], int] = now_ms) -> None:
        self._clock = clock
        self._last_ms = -1
        self._last_random = [0] * 12

    def __call__(self) -> str:
        now = self._clock()
        if now == self._last_ms:
            for i in range(11, -1, -1):
                if self._last_random[i] != 63:
                    self._last_random[i] += 1
                    break
                self._last_random[i] = 0
        else:
            self._last_ms = now
            self._last_random = [secrets.randbelow(64) for _ in range(12)]

        time_chars = []
        for _ in range(8):
            time_chars.append(PUSH_CHARS[now % 64])
            now //= 64
        return "".join(reversed(time_chars)) + "".join(
            PUSH_CHARS[i] for i in self._last_random
        )


class TreeStore:
    """SQL-backed realtime tree: the write path and the snapshot source."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._session_factory = session_factory
        self._listeners: dict[str, dict[int, tuple[OnChange, OnError | None]]] = {}
        self._handles = itertools.count(1)
        self.generate_key = PushIdGenerator(clock)

    async def get(self, path: str) -> Any:
        """Return the value at ``path``: nested dict, scalar, or None."""
        path = normalize_path(path)
        stmt = select(TreeNode.path, TreeNode.value).order_by(TreeNode.path)
        if path:
            stmt = stmt.where(
                or_(TreeNode.path == path, TreeNode.path.startswith(path + "/", autoescape=True))
            )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            rows = [(row.path, row.value) for row in result]
        return _build_tree(path, rows)

    async def set(self, path: str, value: Any) -> None:
        await self.update({path: value})

    async def remove(self, path: str) -> None:
        await self.update({path: None})

    async def push(self, path: str, value: Any) -> str:
        """Store ``value`` under a new generated child key of ``path``."""
        key = self.generate_key()
        await self.update({join_path(path, key): value})
        return key

    async def update(self, updates: Mapping[str, Any]) -> None:
        """Replace several subtrees in one transaction, then notify listeners."""
        normalized = {normalize_path(p): v for p, v in updates.items()}
        if "" in normalized:
            raise InvalidPathError("cannot overwrite the root")
        leaves = {path: list(_flatten(path, value)) for path, value in normalized.items()}

        async with self._session_factory() as session:
            async with session.begin():
                for path, path_leaves in leaves.items():
                    await session.execute(
                        delete(TreeNode).where(
                            or_(
                                TreeNode.path == path,
                                TreeNode.path.startswith(path + "/", autoescape=True),
                                TreeNode.path.in_(_ancestors(path)),
                            )
                        )
                    )
                    for leaf_path, leaf_value in path_leaves:
                        session.add(TreeNode(path=leaf_path, value=leaf_value))
                    await session.flush()

        await self._notify(list(normalized))

    async def subscribe(
        self,
        path: str,
        on_change: OnChange,
        on_error: OnError | None = None,
    ) -> int:
        """Listen on ``path``; the current snapshot is delivered before returning."""
        path = normalize_path(path)
        handle = next(self._handles)
        self._listeners.setdefault(path, {})[handle] = (on_change, on_error)
        await self._dispatch(path, only=handle)
        return handle

    def unsubscribe(self, path: str, handle: int) -> None:
        path = normalize_path(path)
        listeners = self._listeners.get(path)
        if not listeners:
            return
        listeners.pop(handle, None)
        if not listeners:
            del self._listeners[path]

    def listener_count(self, path: str | None = None) -> int:
        if path is None:
            return sum(len(handles) for handles in self._listeners.values())
        return len(self._listeners.get(normalize_path(path), {}))

    async def _notify(self, written: list[str]) -> None:
        for path in list(self._listeners):
            if any(_paths_overlap(path, w) for w in written):
                await self._dispatch(path)

    async def _dispatch(self, path: str, only: int | None = None) -> None:
        try:
            tree = await self.get(path)
        except SQLAlchemyError as exc:
            logger.error("Snapshot read failed for %s: %s", path, exc)
            error = SnapshotSourceError(path, str(exc))
            for handle, (_, on_error) in self._targets(path, only):
                if on_error is not None:
                    self._call(path, on_error, error)
            return

        for handle, (on_change, _) in self._targets(path, only):
            self._call(path, on_change, tree)

    def _targets(self, path: str, only: int | None):
        for handle, callbacks in list(self._listeners.get(path, {}).items()):
            if only is not None and handle != only:
                continue
            # A previous callback may have unsubscribed this one.
            if handle in self._listeners.get(path, {}):
                yield handle, callbacks

    @staticmethod
    def _call(path: str, callback: Callable[[Any], None], arg: Any) -> None:
        try:
            callback(arg)
        except Exception:
            logger.exception("Snapshot listener on %s failed", path)
