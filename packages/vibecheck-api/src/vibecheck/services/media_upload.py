"""Image upload to the external image host.

Uses Cloudinary unsigned uploads: the upload preset authorizes the upload,
so no API secret ever reaches this service.
"""

import logging

import httpx

from vibecheck.config import Settings, get_settings

logger = logging.getLogger(__name__)


class MediaUploadError(Exception):
    """The image host rejected the upload or could not be reached."""


class MediaHostNotConfigured(MediaUploadError):
    """No image host credentials are configured."""


def upload_url(settings: Settings) -> str:
    return f"{settings.cloudinary_api_base.rstrip('/')}/{settings.cloudinary_cloud_name}/image/upload"


async def upload_image(
    content: bytes,
    filename: str,
    content_type: str = "image/jpeg",
    settings: Settings | None = None,
) -> str:
    """Upload an image and return its public URL."""
    settings = settings or get_settings()
    if not settings.media_upload_configured:
        raise MediaHostNotConfigured("Image host is not configured")

    url = upload_url(settings)
    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                url,
                data={"upload_preset": settings.cloudinary_upload_preset},
                files={"file": (filename, content, content_type)},
                headers={"Accept": "application/json"},
                timeout=settings.media_upload_timeout_seconds,
            )
    except httpx.TimeoutException as exc:
        logger.error("Image upload of %s timed out", filename)
        raise MediaUploadError("Image upload timed out") from exc
    except httpx.RequestError as exc:
        logger.error("Image upload of %s failed: %s", filename, exc)
        raise MediaUploadError(f"Image upload failed: {exc}") from exc

    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    if response.status_code >= 400:
        error = body.get("error")
        message = error.get("message") if isinstance(error, dict) else None
        logger.error(
            "Image host returned %d for %s: %s", response.status_code, filename, message
        )
        raise MediaUploadError(message or f"Image host returned {response.status_code}")

    media_url = body.get("secure_url") or body.get("url")
    if not media_url:
        raise MediaUploadError("Image host response has no URL")
    logger.info("Uploaded %s to %s", filename, media_url)
    return media_url
