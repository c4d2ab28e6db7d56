"""Media upload endpoint - proxies images to the image host."""

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from vibecheck.config import Settings
from vibecheck.dependencies import get_app_settings, require_viewer
from vibecheck.schemas.profile import MediaUploadResponse
from vibecheck.services.aggregation import now_ms
from vibecheck.services.media_upload import (
    MediaHostNotConfigured,
    MediaUploadError,
    upload_image,
)

router = APIRouter(prefix="/v1/media", tags=["media"])


@router.post(
    "",
    response_model=MediaUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_media(
    file: UploadFile = File(...),
    viewer_id: str = Depends(require_viewer),
    settings: Settings = Depends(get_app_settings),
) -> MediaUploadResponse:
    """Upload an image for a story or avatar and return its URL."""
    content_type = file.content_type or ""
    if not content_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="Only images can be uploaded",
        )

    content = await file.read(settings.media_max_upload_bytes + 1)
    if len(content) > settings.media_max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Image is too large",
        )

    filename = file.filename or f"story_{viewer_id}_{now_ms()}.jpg"
    try:
        url = await upload_image(content, filename, content_type, settings=settings)
    except MediaHostNotConfigured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Image uploads are not configured",
        )
    except MediaUploadError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        )

    return MediaUploadResponse(url=url)
