"""
Session authority: signs and validates HS256 session tokens.

Validation needs only the token and the signing key, so authenticated
requests never touch the store to check a session. The flip side is that
a token cannot be revoked before it expires.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from shared.errors import InvalidTokenError, TokenExpiredError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..clock import Clock, utc_now

ALGORITHM = "HS256"
REQUIRED_CLAIMS = ["sub", "iat", "exp"]


@dataclass(frozen=True)
class SessionClaims:
    """Decoded, verified token contents."""

    subject: str
    issued_at: datetime
    expires_at: datetime
    token_id: Optional[str] = None


class SessionAuthority:
    """Issues and validates session tokens bound to a client id."""

    def __init__(
        self,
        secret: str,
        *,
        ttl: timedelta = timedelta(hours=24),
        clock: Clock = utc_now,
        metrics: Optional[MetricsCollector] = None,
    ):
        if not secret:
            raise ValueError("Signing secret must not be empty")
        self._secret = secret
        self.ttl = ttl
        self.clock = clock
        self.metrics = metrics
        self.logger = get_logger("identity.sessions")

    def issue(self, client_id: str) -> str:
        """Mint a token with ``sub=client_id`` valid for ``ttl``."""
        if not client_id:
            raise ValueError("client_id must not be empty")

        now = self.clock()
        payload = {
            "sub": client_id,
            "iat": int(now.timestamp()),
            "exp": int((now + self.ttl).timestamp()),
            "jti": uuid.uuid4().hex,
        }
        token = jwt.encode(payload, self._secret, algorithm=ALGORITHM)

        if self.metrics:
            self.metrics.increment_counter("tokens_issued_total")
        self.logger.debug("Session token issued", client_id=client_id, expires=payload["exp"])
        return token

    def decode(self, token: str) -> SessionClaims:
        """Verify ``token`` and return its claims.

        Raises ``InvalidTokenError`` for a bad signature or malformed token
        and ``TokenExpiredError`` once the current time passes ``exp``.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={
                    "require": REQUIRED_CLAIMS,
                    # Expiry is checked below against the authority's clock
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
            subject = payload["sub"]
            issued_at = int(payload["iat"])
            expires_at = int(payload["exp"])
        except (jwt.InvalidTokenError, TypeError, ValueError) as e:
            self._record_validation("invalid")
            self.logger.warning("Session token rejected", reason="invalid", error=str(e))
            raise InvalidTokenError() from e

        if not isinstance(subject, str) or not subject:
            self._record_validation("invalid")
            self.logger.warning("Session token rejected", reason="missing subject")
            raise InvalidTokenError()

        if int(self.clock().timestamp()) > expires_at:
            self._record_validation("expired")
            self.logger.warning("Session token rejected", reason="expired", client_id=subject)
            raise TokenExpiredError()

        self._record_validation("valid")
        return SessionClaims(
            subject=subject,
            issued_at=datetime.fromtimestamp(issued_at, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(expires_at, tz=timezone.utc),
            token_id=payload.get("jti"),
        )

    def validate(self, token: str) -> str:
        """Return the client id the token was issued to."""
        return self.decode(token).subject

    def _record_validation(self, status: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("token_validations_total", status=status)
