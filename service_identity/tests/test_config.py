"""
Tests for environment-driven configuration.
"""

import pytest
from pydantic import ValidationError

from shared.config import DEFAULT_JWT_SECRET, ServiceConfig, get_config

LEGACY_VARS = ["REDIS_URL", "JWT_SECRET", "PORT", "REGION", "LOG_LEVEL"]
SOLTAR_VARS = [
    "SOLTAR_REDIS_URL", "SOLTAR_JWT_SECRET", "SOLTAR_PORT", "SOLTAR_REGION",
    "SOLTAR_LOG_LEVEL", "SOLTAR_DEBUG_ENDPOINTS", "SOLTAR_OTP_WEBHOOK_URL",
]


class TestServiceConfig:
    """Test cases for ServiceConfig."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch, tmp_path):
        """Isolate from the caller's environment and any .env file."""
        for name in LEGACY_VARS + SOLTAR_VARS:
            monkeypatch.delenv(name, raising=False)
        monkeypatch.chdir(tmp_path)

    def test_defaults(self):
        config = get_config("identity")

        assert config.service_name == "identity"
        assert config.port == 8080
        assert config.redis_url == "redis://localhost:6379"
        assert config.redis_connect_attempts == 20
        assert config.redis_connect_backoff_seconds == 5.0
        assert config.region == "us-east-1"
        assert config.vpn_port == 443
        assert config.token_ttl_seconds == 86400
        assert config.otp_ttl_seconds == 300
        assert config.debug_endpoints is False
        assert config.otp_webhook_url is None

    def test_default_secret_is_flagged(self):
        config = get_config("identity")

        assert config.jwt_secret == DEFAULT_JWT_SECRET
        assert config.uses_default_secret is True

    def test_legacy_variable_names(self, monkeypatch):
        """Deployments using the unprefixed names keep working."""
        monkeypatch.setenv("REDIS_URL", "redis://cache:6380/2")
        monkeypatch.setenv("JWT_SECRET", "rotated-secret-value")
        monkeypatch.setenv("PORT", "9000")
        monkeypatch.setenv("REGION", "ap-south-1")

        config = get_config("identity")

        assert config.redis_url == "redis://cache:6380/2"
        assert config.jwt_secret == "rotated-secret-value"
        assert config.uses_default_secret is False
        assert config.port == 9000
        assert config.region == "ap-south-1"

    def test_prefixed_names_win(self, monkeypatch):
        monkeypatch.setenv("REGION", "ap-south-1")
        monkeypatch.setenv("SOLTAR_REGION", "eu-central-1")

        assert get_config("identity").region == "eu-central-1"

    def test_debug_endpoints_flag(self, monkeypatch):
        monkeypatch.setenv("SOLTAR_DEBUG_ENDPOINTS", "true")

        assert get_config("identity").debug_endpoints is True

    def test_overrides(self):
        config = get_config("identity", region="sa-east-1", otp_ttl_seconds=60)

        assert config.region == "sa-east-1"
        assert config.otp_ttl_seconds == 60

    def test_invalid_port(self, monkeypatch):
        monkeypatch.setenv("SOLTAR_PORT", "not-a-port")

        with pytest.raises(ValidationError):
            get_config("identity")

    def test_empty_secret_rejected(self):
        with pytest.raises(ValidationError):
            ServiceConfig(service_name="identity", jwt_secret="")
