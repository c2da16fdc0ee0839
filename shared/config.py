"""
Shared configuration management for the Places Gateway.
"""

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        populate_by_name=True,
    )

    # Environment
    env: str = Field(default="local", alias="PLACES_ENV")
    log_level: str = Field(default="info", alias="PLACES_LOG_LEVEL")

    # Upstream provider
    google_places_api_key: Optional[str] = Field(default=None, alias="GOOGLE_PLACES_API_KEY")
    google_places_base_url: str = Field(
        default="https://maps.googleapis.com/maps/api/place",
        alias="GOOGLE_PLACES_BASE_URL",
    )
    upstream_timeout_seconds: float = Field(default=8.0, gt=0, alias="PLACES_UPSTREAM_TIMEOUT_SECONDS")
    default_radius_meters: int = Field(default=8047, gt=0, alias="PLACES_DEFAULT_RADIUS_METERS")

    # Budget
    monthly_budget_usd: float = Field(default=50.0, gt=0, alias="GOOGLE_PLACES_BUDGET")
    cost_per_request_usd: float = Field(default=0.032, ge=0, alias="GOOGLE_PLACES_COST_PER_REQUEST")
    budget_alert_thresholds: List[int] = Field(default=[50, 75, 90], alias="PLACES_BUDGET_ALERT_THRESHOLDS")

    # Rate limiting
    rate_limit_max_requests: int = Field(default=5, gt=0, alias="PLACES_RATE_LIMIT_MAX_REQUESTS")
    rate_limit_window_seconds: int = Field(default=3600, gt=0, alias="PLACES_RATE_LIMIT_WINDOW_SECONDS")

    # Caching and housekeeping
    cache_ttl_seconds: int = Field(default=3600, gt=0, alias="PLACES_CACHE_TTL_SECONDS")
    sweep_interval_seconds: int = Field(default=600, gt=0, alias="PLACES_SWEEP_INTERVAL_SECONDS")
    max_stored_calls: int = Field(default=10000, gt=0, alias="PLACES_MAX_STORED_CALLS")

    # Alert delivery
    alert_channel: str = Field(default="log", alias="PLACES_ALERT_CHANNEL")
    alert_webhook_url: Optional[str] = Field(default=None, alias="PLACES_ALERT_WEBHOOK_URL")
    smtp_host: Optional[str] = Field(default=None, alias="PLACES_SMTP_HOST")
    smtp_port: int = Field(default=25, alias="PLACES_SMTP_PORT")
    alert_email_from: Optional[str] = Field(default=None, alias="PLACES_ALERT_EMAIL_FROM")
    alert_email_to: Optional[str] = Field(default=None, alias="PLACES_ALERT_EMAIL_TO")

    @field_validator("budget_alert_thresholds")
    @classmethod
    def _sort_thresholds(cls, value: List[int]) -> List[int]:
        if any(threshold <= 0 for threshold in value):
            raise ValueError("alert thresholds must be positive percentages")
        return sorted(set(value))

    @field_validator("alert_channel")
    @classmethod
    def _normalize_channel(cls, value: str) -> str:
        return value.strip().lower()


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
