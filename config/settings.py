"""Configuration management using pydantic-settings."""
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OpenWeatherMap configuration
    owm_api_key: Optional[str] = None
    owm_base_url: str = "https://api.openweathermap.org/data/2.5/weather"

    # Cache settings (milliseconds)
    cache_period_ms: int = 600_000
    resiliency_period_ms: int = 3_600_000
    fetch_timeout_ms: int = 5_000
    # One of: always_use_last_measured, always_use_last_measured_but_extend_cache,
    # always_use_last_fetched_value
    reconciliation_mode: str = "always_use_last_measured_but_extend_cache"

    # Last raw response per location is written here when set
    response_log_path: Optional[Path] = None

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
