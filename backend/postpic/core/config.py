"""Application configuration settings.

All configuration values are loaded from environment variables (.env file).
Every value has a working default so the pipeline can run without a .env.
"""

import os
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    PROJECT_NAME: str = "Postpic Media API"
    VERSION: str = "0.1.0"
    API_V1_PREFIX: str = "/api/v1"
    DEBUG: bool = False

    # Media storage
    # Each upload gets its own directory below MEDIA_ROOT
    MEDIA_ROOT: str = "./static/postpic"
    PUBLIC_URL_PREFIX: str = "/postpic"
    UPLOAD_CHUNK_SIZE: int = 1024 * 1024

    # Media toolchain
    FFMPEG_PATH: str = "ffmpeg"
    FFPROBE_PATH: str = "ffprobe"
    TOOLCHAIN_TIMEOUT_SECONDS: float = 600.0
    POSTER_TIMESTAMP: str = "00:00:01"

    # Rendition fan-out
    MAX_CONCURRENT_TRANSCODES: int = min(4, os.cpu_count() or 1)

    # Subtitle stub
    # SUBTITLE_BACKEND: thread (in-process pool) or celery
    SUBTITLE_BACKEND: str = "thread"
    SUBTITLE_LANGUAGE: str = "english"

    # Redis / Celery
    REDIS_URL: str = "redis://localhost:6379/0"
    CELERY_BROKER_URL: Optional[str] = None
    CELERY_RESULT_BACKEND: Optional[str] = None

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
