"""
Shared configuration management for Soltar services.
"""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_JWT_SECRET = "your-secret-key-change-in-production"


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    env: str = Field(default="local", validation_alias=AliasChoices("SOLTAR_ENV"))
    log_level: str = Field(default="info", validation_alias=AliasChoices("SOLTAR_LOG_LEVEL", "LOG_LEVEL"))

    # HTTP listener
    host: str = Field(default="0.0.0.0", validation_alias=AliasChoices("SOLTAR_HOST"))
    port: int = Field(default=8080, validation_alias=AliasChoices("SOLTAR_PORT", "PORT"))

    # Key-value store
    redis_url: str = Field(default="redis://localhost:6379", validation_alias=AliasChoices("SOLTAR_REDIS_URL", "REDIS_URL"))
    redis_connect_attempts: int = Field(default=20, ge=1, validation_alias=AliasChoices("SOLTAR_REDIS_CONNECT_ATTEMPTS"))
    redis_connect_backoff_seconds: float = Field(default=5.0, ge=0, validation_alias=AliasChoices("SOLTAR_REDIS_CONNECT_BACKOFF_SECONDS"))
    store_timeout_seconds: float = Field(default=5.0, gt=0, validation_alias=AliasChoices("SOLTAR_STORE_TIMEOUT_SECONDS"))

    # Security
    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET, min_length=1, validation_alias=AliasChoices("SOLTAR_JWT_SECRET", "JWT_SECRET"))
    token_ttl_seconds: int = Field(default=24 * 60 * 60, gt=0, validation_alias=AliasChoices("SOLTAR_TOKEN_TTL_SECONDS"))
    otp_ttl_seconds: int = Field(default=5 * 60, gt=0, validation_alias=AliasChoices("SOLTAR_OTP_TTL_SECONDS"))

    # Provisioning
    region: str = Field(default="us-east-1", validation_alias=AliasChoices("SOLTAR_REGION", "REGION"))
    vpn_domain: str = Field(default="soltar.com", validation_alias=AliasChoices("SOLTAR_VPN_DOMAIN"))
    vpn_port: int = Field(default=443, gt=0, lt=65536, validation_alias=AliasChoices("SOLTAR_VPN_PORT"))

    # OTP delivery
    otp_webhook_url: Optional[str] = Field(default=None, validation_alias=AliasChoices("SOLTAR_OTP_WEBHOOK_URL"))
    notifier_timeout_seconds: float = Field(default=5.0, gt=0, validation_alias=AliasChoices("SOLTAR_NOTIFIER_TIMEOUT_SECONDS"))

    # Development only
    debug_endpoints: bool = Field(default=False, validation_alias=AliasChoices("SOLTAR_DEBUG_ENDPOINTS"))

    @property
    def uses_default_secret(self) -> bool:
        """Whether the signing secret is still the development placeholder."""
        return self.jwt_secret == DEFAULT_JWT_SECRET


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str

    def __init__(self, service_name: str, **kwargs):
        super().__init__(service_name=service_name, **kwargs)


def get_config(service_name: str, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, **overrides)
