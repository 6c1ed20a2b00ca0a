"""Configuration settings for the running challenge service."""

from datetime import date
from pathlib import Path
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


# __file__ = src/run_challenge/config.py
PACKAGE_ROOT = Path(__file__).parent.parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(PACKAGE_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 3000
    debug: bool = False
    log_level: str = "INFO"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Strava OAuth
    strava_client_id: str = ""
    strava_client_secret: str = ""
    strava_redirect_uri: str = "http://localhost:3000/api/v1/auth/strava/callback"
    strava_scope: str = "read,activity:read_all"

    # Session tokens
    jwt_secret_key: str = "change-me-in-production-please-32chars"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 30

    # Challenge rules
    challenge_start_date: date = date(2026, 1, 1)
    default_bailout_passes: int = 4
    progress_window_days: int = 30
    miss_lookback: int = 10
    feed_page_size: int = 200

    # Database
    database_path: Path = PACKAGE_ROOT / "challenge.db"
    db_pool_size: int = 5


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
