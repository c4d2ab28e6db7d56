"""Application configuration via environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    database_url: str = "sqlite+aiosqlite:///./vibecheck.db"
    api_host: str = "0.0.0.0"
    api_port: int = 8787
    cors_origins: str = "*"
    environment: str = "development"

    # Realtime tree layout and view materialization
    stories_path: str = "stories"
    story_ttl_hours: int = 24
    chat_history_limit: int = 100
    review_stats_window: int = 20
    anonymous_display_name: str = "Usuário Anônimo"
    stream_keepalive_seconds: float = 15.0

    # Image host (Cloudinary unsigned uploads)
    cloudinary_cloud_name: str = ""
    cloudinary_upload_preset: str = "vibecheck_stories_unsigned"
    cloudinary_api_base: str = "https://api.cloudinary.com/v1_1"
    media_upload_timeout_seconds: int = 30
    media_max_upload_bytes: int = 10 * 1024 * 1024

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def media_upload_configured(self) -> bool:
        return bool(self.cloudinary_cloud_name and self.cloudinary_upload_preset)

    def validate_production(self) -> None:
        """Raise if running in production without an image host."""
        if self.environment == "production" and not self.media_upload_configured:
            raise RuntimeError(
                "CLOUDINARY_CLOUD_NAME and CLOUDINARY_UPLOAD_PRESET must be set in production."
            )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
