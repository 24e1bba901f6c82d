"""Application configuration and settings management."""

from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="VP_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Visit Planner API"
    api_prefix: str = "/api"

    google_maps_api_key: Optional[str] = Field(
        default=None,
        description="Google Maps Platform key used for geocoding and distance lookups.",
    )
    google_maps_base_url: str = Field(
        default="https://maps.googleapis.com/maps/api",
        description="Base URL for the Google Maps web services.",
    )
    request_timeout_seconds: float = Field(default=10.0, gt=0.0)
    lookup_max_retries: int = Field(default=2, ge=0)
    lookup_backoff_seconds: float = Field(default=0.5, ge=0.0)
    lookup_cache_max_entries: int = Field(
        default=10_000,
        ge=1,
        description="Upper bound on cached geocoding and distance results per client.",
    )
    distance_chunk_size: int = Field(default=25, ge=1, description="Destinations per Distance Matrix request.")
    geocode_batch_size: int = Field(default=10, ge=1)
    batch_pause_seconds: float = Field(default=0.2, ge=0.0)

    grace_period_minutes: int = Field(default=15, ge=0)
    day_start_time: str = Field(default="09:00", pattern=r"^\d{2}:\d{2}$")
    fallback_minutes_per_km: float = Field(
        default=1.2,
        gt=0.0,
        description="Travel minutes assumed per great-circle kilometre when no lookup is available.",
    )

    base_buffer_minutes: int = Field(default=45, gt=0)
    minimum_buffer_minutes: int = Field(default=15, ge=0)
    maximum_buffer_minutes: int = Field(default=120, ge=0)
    flexible_buffer_factor: float = Field(default=0.8, gt=0.0)

    max_reordering_scenarios: int = Field(default=50, ge=1)
    test_buffer_sizes: tuple[int, ...] = Field(default=(30, 35, 40, 45, 50, 55, 60))
    simulation_time_budget_ms: int = Field(default=2000, ge=0)

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @field_validator("test_buffer_sizes", mode="before")
    @classmethod
    def _parse_int_tuple_from_env(cls, value: Any) -> tuple[int, ...]:
        """Parse integer tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(int(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(int(item) for item in parsed)
            except (json.JSONDecodeError, TypeError, ValueError):
                pass
            if "," in value:
                return tuple(int(item.strip()) for item in value.split(",") if item.strip())
            if value.strip():
                try:
                    return (int(value.strip()),)
                except ValueError:
                    return tuple()
        return tuple()


settings = Settings()
