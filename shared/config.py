"""
Shared configuration management for the Console BFF Access Layer.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ACCESS_",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Upstream directory (CSDS)
    directory_base_url: str = Field(default="https://api.liveperson.net")
    directory_cache_ttl_seconds: int = Field(default=3600)

    # Outbound dispatch
    dispatcher_max_concurrent: int = Field(default=5)
    dispatcher_min_interval_ms: int = Field(default=100)
    upstream_timeout_seconds: float = Field(default=30.0)

    # Request policy
    default_source_tag: str = Field(default="ccui")

    # CORS
    cors_origins: str = Field(default="*")


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port)
