"""
One-time passcode state machine.

Per email the record moves NoCode -> Pending -> Verified | Expired. Both
terminal states delete the record, so at most one pending code exists for
an email and a verified code cannot be redeemed twice.
"""

import asyncio
import hmac
import secrets
from datetime import timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from shared.errors import OTPExpiredError, OTPMismatchError, OTPNotFoundError, StorageError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..clock import Clock, utc_now
from ..storage import KeyValueStore, KeyNotFoundError
from .notifier import OTPNotifier, LoggingNotifier

OTP_DIGITS = 6
OTP_KEY_PREFIX = "otp:"


def otp_key(email: str) -> str:
    """Store key holding the pending code for ``email``."""
    return f"{OTP_KEY_PREFIX}{email}"


class OTPRecord(BaseModel):
    """Pending code for one email, serialized as ``{otp, expires, attempts}``."""

    model_config = ConfigDict(populate_by_name=True)

    code: str = Field(alias="otp")
    expires_at: int = Field(alias="expires", description="Unix seconds")
    attempt_count: int = Field(default=0, alias="attempts")

    def is_expired(self, now_unix: int) -> bool:
        return now_unix > self.expires_at

    def to_bytes(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> "OTPRecord":
        try:
            return cls.model_validate_json(data)
        except PydanticValidationError as e:
            raise StorageError("Unreadable OTP record") from e


class OTPManager:
    """Issues, persists and redeems one-time passcodes."""

    def __init__(
        self,
        store: KeyValueStore,
        notifier: Optional[OTPNotifier] = None,
        *,
        ttl: timedelta = timedelta(minutes=5),
        notifier_timeout: float = 5.0,
        clock: Clock = utc_now,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.store = store
        self.notifier = notifier or LoggingNotifier()
        self.ttl = ttl
        self.notifier_timeout = notifier_timeout
        self.clock = clock
        self.metrics = metrics
        self.logger = get_logger("identity.otp")

    @staticmethod
    def generate_code() -> str:
        """Uniform code over 000000-999999, zero padded."""
        return f"{secrets.randbelow(10 ** OTP_DIGITS):0{OTP_DIGITS}d}"

    def _now_unix(self) -> int:
        return int(self.clock().timestamp())

    async def issue(self, email: str) -> OTPRecord:
        """Create a code for ``email``, replacing any pending one, and deliver it.

        A store failure propagates. A delivery failure is logged and the
        issued code stays valid.
        """
        record = OTPRecord(
            code=self.generate_code(),
            expires_at=self._now_unix() + int(self.ttl.total_seconds()),
            attempt_count=0,
        )
        await self.store.put(otp_key(email), record.to_bytes())
        self.logger.info("OTP stored", email=email, expires=record.expires_at)

        delivery = "sent"
        try:
            await asyncio.wait_for(
                self.notifier.send(email, record.code, int(self.ttl.total_seconds())),
                timeout=self.notifier_timeout,
            )
        except asyncio.TimeoutError:
            delivery = "timeout"
            self.logger.warning("OTP delivery timed out", email=email, channel=self.notifier.channel)
        except Exception as e:
            delivery = "failed"
            self.logger.warning(
                "OTP delivery failed",
                email=email,
                channel=self.notifier.channel,
                error=str(e),
            )

        if self.metrics:
            self.metrics.increment_counter("otp_issued_total", delivery=delivery)
        return record

    async def verify(self, email: str, candidate: str) -> None:
        """Redeem ``candidate`` for ``email``.

        Raises ``OTPNotFoundError`` when nothing is pending,
        ``OTPMismatchError`` when the code differs and ``OTPExpiredError``
        (after deleting the record) when the code is past its expiry. On
        success the record is deleted.

        Every write is conditional on the record still holding the bytes
        read here, so a concurrent redemption or reissue is never undone
        and a code is redeemed at most once.
        """
        key = otp_key(email)
        try:
            stored = await self.store.get(key)
        except KeyNotFoundError:
            self._record_outcome("not_found")
            self.logger.info("OTP verification without pending code", email=email)
            raise OTPNotFoundError() from None

        record = OTPRecord.from_bytes(stored)
        if not hmac.compare_digest(record.code.encode("utf-8"), candidate.encode("utf-8")):
            # Attempts are tracked for auditing; they do not lock the code
            record.attempt_count += 1
            if not await self.store.compare_and_set(key, stored, record.to_bytes()):
                self.logger.info("OTP changed during verification; attempt not recorded", email=email)
            self._record_outcome("mismatch")
            self.logger.info("OTP mismatch", email=email, attempts=record.attempt_count)
            raise OTPMismatchError()

        if record.is_expired(self._now_unix()):
            await self.store.compare_and_delete(key, stored)
            self._record_outcome("expired")
            self.logger.info("OTP expired", email=email)
            raise OTPExpiredError()

        if not await self.store.compare_and_delete(key, stored):
            # Redeemed or replaced by a concurrent request
            self._record_outcome("not_found")
            self.logger.info("OTP no longer pending at redemption", email=email)
            raise OTPNotFoundError()

        self._record_outcome("verified")
        self.logger.info("OTP verified", email=email)

    def _record_outcome(self, outcome: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("otp_verifications_total", outcome=outcome)
