"""Vibe catalog endpoint."""

from fastapi import APIRouter

from vibecheck.schemas.places import VibeOption
from vibecheck.services.vibes import VIBE_OPTIONS

router = APIRouter(prefix="/v1/vibes", tags=["vibes"])


@router.get("", response_model=list[VibeOption])
async def list_vibes() -> list[VibeOption]:
    """Selectable vibes, hottest first."""
    return VIBE_OPTIONS
