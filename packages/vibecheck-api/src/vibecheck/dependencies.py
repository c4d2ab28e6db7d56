"""FastAPI dependency injection functions."""

from fastapi import Depends, Header, HTTPException, Request, status

from vibecheck.config import Settings, get_settings
from vibecheck.services.aggregation import SnapshotAggregator
from vibecheck.services.tree_store import InvalidPathError, TreeStore, validate_key


def get_app_settings() -> Settings:
    """Return application settings."""
    return get_settings()


def get_tree_store(request: Request) -> TreeStore:
    """Return the realtime tree shared by the application."""
    return request.app.state.tree_store


def get_aggregator(request: Request) -> SnapshotAggregator:
    """Return the story aggregator shared by the application."""
    return request.app.state.aggregator


def path_segment(value: str, label: str = "identifier") -> str:
    """Validate a client-supplied value used as one tree key."""
    try:
        return validate_key(value)
    except InvalidPathError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {label}",
        )


def get_viewer_id(x_viewer_id: str | None = Header(default=None)) -> str | None:
    """The viewing user's id, if the client sent one.

    Sessions are managed outside this service; clients pass the id of the
    signed-in user in the ``X-Viewer-Id`` header.
    """
    if not x_viewer_id:
        return None
    return path_segment(x_viewer_id, "viewer id")


def require_viewer(viewer_id: str | None = Depends(get_viewer_id)) -> str:
    """Reject requests that have no viewer."""
    if viewer_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Viewer-Id header",
        )
    return viewer_id


def require_self(user_id: str, viewer_id: str = Depends(require_viewer)) -> str:
    """Allow only the user themselves to change their profile."""
    if path_segment(user_id, "user id") != viewer_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot modify another user's profile",
        )
    return viewer_id
