"""
Tests for session token issuance and validation.
"""

from datetime import timedelta

import jwt
import pytest

from service_identity.app.sessions import SessionAuthority
from shared.errors import AuthenticationError, InvalidTokenError, TokenExpiredError
from shared.metrics import MetricsCollector
from shared.test_helpers import FakeClock, MockTokenGenerator, TEST_JWT_SECRET


class TestSessionAuthority:
    """Test cases for SessionAuthority."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def metrics(self):
        return MetricsCollector("identity")

    @pytest.fixture
    def authority(self, clock, metrics):
        """Create SessionAuthority on a fixed clock."""
        return SessionAuthority(TEST_JWT_SECRET, clock=clock, metrics=metrics)

    @pytest.fixture
    def token_generator(self):
        return MockTokenGenerator()

    def test_issue_then_validate(self, authority):
        """Validation returns the client id the token was issued for."""
        token = authority.issue("client-123")

        assert authority.validate(token) == "client-123"

    def test_claims(self, authority, clock):
        """Tokens carry sub, iat, exp 24 hours out and a unique jti."""
        token = authority.issue("client-123")
        payload = jwt.decode(token, options={"verify_signature": False})

        assert jwt.get_unverified_header(token)["alg"] == "HS256"
        assert payload["sub"] == "client-123"
        assert payload["iat"] == int(clock().timestamp())
        assert payload["exp"] - payload["iat"] == 24 * 60 * 60
        assert payload["jti"] != jwt.decode(authority.issue("client-123"), options={"verify_signature": False})["jti"]

    def test_decode_returns_claims(self, authority, clock):
        token = authority.issue("client-123")

        claims = authority.decode(token)

        assert claims.subject == "client-123"
        assert claims.issued_at == clock()
        assert claims.expires_at == clock() + timedelta(hours=24)
        assert claims.token_id

    def test_valid_until_expiry(self, authority, clock):
        """Token still validates at exactly its expiry second."""
        token = authority.issue("client-123")
        clock.advance(hours=24)

        assert authority.validate(token) == "client-123"

    def test_expired_after_ttl(self, authority, clock, metrics):
        """One second past 24 hours the token is rejected."""
        token = authority.issue("client-123")
        clock.advance(hours=24, seconds=1)

        with pytest.raises(TokenExpiredError) as exc_info:
            authority.validate(token)

        assert exc_info.value.status_code == 401
        assert metrics.get_value("token_validations_total", status="expired") == 1.0

    def test_expired_by_wall_clock(self, token_generator):
        """Default clock is real time."""
        authority = SessionAuthority(TEST_JWT_SECRET)

        with pytest.raises(TokenExpiredError):
            authority.validate(token_generator.generate_expired("client-123"))

    def test_wrong_secret(self, authority):
        """Tokens signed with another key are rejected."""
        token = MockTokenGenerator(secret="some-other-secret-that-is-long-enough").generate("client-123")

        with pytest.raises(InvalidTokenError):
            authority.validate(token)

    def test_tampered_payload(self, authority):
        """Changing any payload byte breaks the signature."""
        header, payload, signature = authority.issue("client-123").split(".")
        forged = jwt.encode({"sub": "someone-else"}, "x" * 32, algorithm="HS256").split(".")[1]

        with pytest.raises(InvalidTokenError):
            authority.validate(".".join([header, forged, signature]))

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c", "Bearer abc"])
    def test_malformed(self, authority, token):
        with pytest.raises(InvalidTokenError):
            authority.validate(token)

    def test_missing_expiry(self, authority, token_generator):
        """A token without exp is invalid rather than eternal."""
        with pytest.raises(InvalidTokenError):
            authority.validate(token_generator.generate_without_expiry("client-123"))

    def test_missing_subject(self, authority, token_generator):
        with pytest.raises(InvalidTokenError):
            authority.validate(token_generator.generate(None))

    def test_empty_subject(self, authority, token_generator):
        with pytest.raises(InvalidTokenError):
            authority.validate(token_generator.generate(""))

    def test_algorithm_none_rejected(self, authority):
        """Unsigned tokens are never accepted."""
        token = jwt.encode({"sub": "client-123", "iat": 0, "exp": 2 ** 31}, None, algorithm="none")

        with pytest.raises(InvalidTokenError):
            authority.validate(token)

    def test_all_failures_are_authentication_errors(self, authority):
        """Callers can map every rejection to 401 with one handler."""
        assert issubclass(InvalidTokenError, AuthenticationError)
        assert issubclass(TokenExpiredError, AuthenticationError)

    def test_validation_metrics(self, authority, metrics):
        authority.validate(authority.issue("client-123"))
        with pytest.raises(InvalidTokenError):
            authority.validate("garbage")

        assert metrics.get_value("tokens_issued_total") == 1.0
        assert metrics.get_value("token_validations_total", status="valid") == 1.0
        assert metrics.get_value("token_validations_total", status="invalid") == 1.0

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            SessionAuthority("")

    def test_custom_ttl(self, clock):
        authority = SessionAuthority(TEST_JWT_SECRET, ttl=timedelta(minutes=10), clock=clock)
        token = authority.issue("client-123")
        clock.advance(minutes=10, seconds=1)

        with pytest.raises(TokenExpiredError):
            authority.validate(token)
