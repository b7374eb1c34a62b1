"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    stripe_secret_key: str
    currency: str = "jpy"
    platform_fee_rate: float = 0.10
    processor_fee_rate: float = 0.036
    storage_bucket: str = "photo-sessions"
    checkout_stale_minutes: int = 15
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
