"""
Shared configuration management for the Posts Access Layer.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="ACCESS_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # External services
    redis_url: str = Field(default="redis://localhost:6379/0")
    postgres_dsn: str = Field(default="postgres://localhost:5432/access")
    postgres_min_pool_size: int = Field(default=2, ge=1)
    postgres_max_pool_size: int = Field(default=10, ge=1)

    # Post cache
    post_cache_ttl_seconds: int = Field(default=3600, gt=0)
    post_cache_namespace: str = Field(default="post")
    request_timeout_seconds: float = Field(default=10.0, gt=0)

    # Observability
    enable_tracing: bool = Field(default=False)
    otel_exporter: str = Field(default="http://localhost:4318")
    enable_console_tracing: bool = Field(default=False)


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
