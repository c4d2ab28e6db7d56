"""Health check endpoint."""

from fastapi import APIRouter, Depends

from vibecheck import __version__
from vibecheck.dependencies import get_tree_store
from vibecheck.services.tree_store import TreeStore

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(store: TreeStore = Depends(get_tree_store)) -> dict:
    """Return API health status, version and open realtime listeners."""
    return {
        "status": "ok",
        "version": __version__,
        "realtime_listeners": store.listener_count(),
    }
