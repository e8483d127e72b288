"""
Shared configuration management for the IP Info Gateway.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="IPINFO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Upstream geolocation API
    upstream_url: str = Field(
        default="https://ifconfig.co/json",
        description="Geolocation endpoint queried for the caller's public address.",
    )
    upstream_user_agent: str = Field(
        default="ipinfo-gateway/1.0",
        description="Client label sent in the User-Agent header.",
    )
    upstream_timeout_seconds: float = Field(default=10.0, gt=0.0)

    # Cache coordination
    single_flight: bool = Field(
        default=False,
        description="Share one in-flight upstream fetch between concurrent cache misses.",
    )
    warm_on_startup: bool = Field(
        default=False,
        description="Populate the cache once while the service starts.",
    )


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int = 3000
    host: str = "0.0.0.0"


def get_config(service_name: str) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name)
