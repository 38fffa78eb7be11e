"""
Application configuration.

This module provides centralized configuration management using Pydantic.
Nested sections can be overridden from the environment with a double
underscore delimiter, e.g. ``FACEBOOK__ACCESS_TOKEN`` or ``JOBS__CALL_TIMEOUT``.
"""

from typing import List, Optional
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class FacebookConfig(BaseModel):
    """Facebook Marketing API configuration."""
    access_token: Optional[str] = None
    ad_account_id: Optional[str] = Field(default=None, description="Ad account in act_<digits> form")
    page_id: Optional[str] = None
    website_url: str = "https://example.com"
    api_version: str = "v18.0"
    graph_url: str = "https://graph.facebook.com"
    timeout: float = 10.0
    max_retries: int = 3
    backoff_factor: float = 0.3
    retry_on_status: List[int] = Field(default_factory=lambda: [500, 502, 503, 504])

class JobConfig(BaseModel):
    """Bulk ad creation job configuration."""
    call_timeout: float = 10.0  # seconds, per remote call
    default_budget_amount: float = 10.0
    default_budget_currency: str = "USD"
    default_budget_type: str = "DAILY"
    fallback_ad_set_id: str = "default-adset-id"
    max_media_per_job: int = 20

class MediaConfig(BaseModel):
    """Media upload configuration."""
    upload_dir: str = "uploads"
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    max_files: int = 20
    allowed_mime_types: List[str] = Field(default_factory=lambda: [
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "video/mp4",
        "video/quicktime",
    ])

    # Uploaded images are shrunk to fit this box and stored as JPEG
    image_max_width: int = 1200
    image_max_height: int = 800
    image_quality: int = 85

class RedisConfig(BaseModel):
    """Redis configuration for progress notifications."""
    enabled: bool = False
    url: str = "redis://localhost:6379"
    password: Optional[str] = None
    prefix: str = "bulkads:"
    progress_ttl: int = 3600  # 1 hour

    # Key prefixes
    progress_prefix: str = "progress:"

class ServerConfig(BaseModel):
    """Server configuration."""
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

class Settings(BaseSettings):
    """Application settings."""
    facebook: FacebookConfig = FacebookConfig()
    jobs: JobConfig = JobConfig()
    media: MediaConfig = MediaConfig()
    redis: RedisConfig = RedisConfig()
    server: ServerConfig = ServerConfig()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

# Create global settings instance
settings = Settings()

# Export individual configs for convenience
facebook_config = settings.facebook
job_config = settings.jobs
media_config = settings.media
redis_config = settings.redis
server_config = settings.server
