"""Application configuration using Pydantic BaseSettings."""
from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


def _load_env_file() -> None:
    """Load .env with fallback encodings to avoid Unicode errors."""
    env_path = Path(".env")
    if not env_path.exists():
        return
    for encoding in ("utf-8", "utf-8-sig", "cp1254"):
        try:
            load_dotenv(dotenv_path=env_path, encoding=encoding, override=False)
            return
        except UnicodeDecodeError:
            continue
    logger.warning("Failed to decode .env; using process env vars only.")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = "Vitrin Studio"
    app_version: str = "1.2.0"
    app_env: str = "dev"  # Environment: dev, test, prod
    debug: bool = False

    # Gemini settings
    gemini_api_key: str | None = None
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    analysis_model: str = "gemini-3-pro-preview"
    image_model: str = "gemini-3-pro-image-preview"
    image_edit_model: str = "gemini-2.5-flash-image"
    video_model: str = "veo-3.1-generate-preview"
    analysis_thinking_budget: int = 32768
    request_timeout_seconds: float = 120.0

    # Video job polling
    video_poll_interval_seconds: float = 10.0
    video_max_poll_attempts: int = 60  # 10 minutes at the default interval
    video_resolution: str = "720p"

    # Idle sessions are dropped from memory after this many seconds
    session_ttl_seconds: float = 3600.0

    # Analysis defaults
    default_language: str = "tr"

    # PDF report; Pillow's bundled font is used when unset
    report_font_path: str | None = None

    # CORS (front end dev servers)
    cors_origins: list[str] = [
        "http://127.0.0.1:3000",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://localhost:5173",
    ]

    # Logging settings
    log_level: str = "info"  # debug, info, warning, error
    log_dir: str = "logs"
    log_backup_count: int = 14
    log_to_file: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"  # Ignore extra fields from .env


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


# Load .env file on module import
_load_env_file()
