"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    supabase_anon_key: str | None = None
    admin_token: str
    photo_bucket: str = "job-photos"
    geolocation_url: str = "https://ipapi.co/json/"
    clock_confirm_timeout_s: float = 15.0
    clock_safety_timeout_s: float = 20.0
    autosave_quiet_period_s: float = 1.0
    geolocation_timeout_s: float = 8.0
    geolocation_max_age_s: float = 60.0
    max_photo_bytes: int = 10 * 1024 * 1024
    recent_limit: int = 5
    recent_fetch_limit: int = 10
    recent_fallback_limit: int = 200
    subscription_poll_interval_s: float = 2.0
    preview_size: int = 400
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
