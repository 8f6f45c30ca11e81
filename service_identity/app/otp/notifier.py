"""
Delivery channels for one-time passcodes.
"""

from abc import ABC, abstractmethod
from typing import Optional

import httpx

from shared.config import BaseConfig
from shared.logging import get_logger


class OTPNotifier(ABC):
    """Delivers a freshly issued code to its owner."""

    channel: str = "abstract"

    @abstractmethod
    async def send(self, email: str, code: str, expires_in: int) -> None:
        """Deliver ``code`` to ``email``. Raise on delivery failure."""


class LoggingNotifier(OTPNotifier):
    """Development channel: writes the code to the service log."""

    channel = "log"

    def __init__(self):
        self.logger = get_logger("identity.otp.notifier")

    async def send(self, email: str, code: str, expires_in: int) -> None:
        self.logger.info("OTP issued", email=email, otp=code, expires_in=expires_in)


class WebhookNotifier(OTPNotifier):
    """Hands the code to an external mailer over HTTP."""

    channel = "webhook"

    def __init__(self, url: str, timeout: float = 5.0):
        self.url = url
        self.timeout = timeout
        self.logger = get_logger("identity.otp.webhook")

    async def send(self, email: str, code: str, expires_in: int) -> None:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                self.url,
                json={"email": email, "code": code, "expires_in": expires_in},
            )
            response.raise_for_status()

        self.logger.debug("OTP handed to webhook", email=email, status_code=response.status_code)


def build_notifier(config: BaseConfig) -> OTPNotifier:
    """Pick the delivery channel from configuration."""
    webhook_url: Optional[str] = config.otp_webhook_url
    if webhook_url:
        return WebhookNotifier(webhook_url, timeout=config.notifier_timeout_seconds)
    return LoggingNotifier()
