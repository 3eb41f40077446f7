"""
Shared configuration management for the Identity Bridge.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="IDENTITY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Key cache
    key_cache_backend: Literal["redis", "memory"] = Field(default="redis")
    redis_url: str = Field(default="redis://localhost:6379/0")
    key_cache_prefix: str = Field(default="identity:signing-key")

    # Signing keys
    signing_key_algorithm: Literal["RS256", "RS384", "RS512"] = Field(default="RS256")
    signing_key_size: int = Field(default=2048, ge=2048)
    signing_key_ttl_seconds: int = Field(default=60 * 60, gt=0)
    signing_key_id_prefix: str = Field(default="jwtRS256")
    await_key_cache_writes: bool = Field(default=True)

    # Issued tokens
    token_lifetime_seconds: int = Field(default=60 * 60, gt=0)

    # OAuth2 client registered with the identity provider
    client_id: str = Field(default="")
    client_secret: str = Field(default="")

    # Identity provider
    provider_api_url: str = Field(default="https://discord.com/api/v10")
    provider_authorize_url: str = Field(default="https://discord.com/oauth2/authorize")
    provider_scope: str = Field(default="identify email guilds")
    provider_timeout_seconds: float = Field(default=10.0, gt=0)


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
