"""
One-time passcode issuance and verification.
"""

from .manager import OTPManager, OTPRecord, otp_key
from .notifier import OTPNotifier, LoggingNotifier, WebhookNotifier, build_notifier

__all__ = [
    "OTPManager",
    "OTPRecord",
    "otp_key",
    "OTPNotifier",
    "LoggingNotifier",
    "WebhookNotifier",
    "build_notifier",
]
