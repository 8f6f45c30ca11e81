"""
Shared error handling for Soltar services.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field

from shared.logging import request_id_var


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class SoltarException(Exception):
    """Base exception for Soltar services."""

    status_code = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None,
                 status_code: Optional[int] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id_var.get(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(SoltarException):
    """Malformed or missing input."""

    status_code = 400

    def __init__(self, message: str = "Invalid request", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class AuthenticationError(SoltarException):
    """Missing, invalid or expired credentials."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHENTICATION_ERROR", message, details)


class InvalidTokenError(AuthenticationError):
    """Token signature or structure did not verify."""

    def __init__(self, message: str = "Invalid token", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class TokenExpiredError(AuthenticationError):
    """Token is past its expiry."""

    def __init__(self, message: str = "Token expired", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class NotFoundError(SoltarException):
    """Unknown client or environment."""

    status_code = 404

    def __init__(self, message: str = "Not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class OTPError(SoltarException):
    """One-time passcode could not be redeemed."""

    status_code = 400

    def __init__(self, message: str = "Invalid OTP", details: Optional[Dict[str, Any]] = None):
        super().__init__("OTP_ERROR", message, details)


class OTPNotFoundError(OTPError):
    """No pending code for the email."""


class OTPMismatchError(OTPError):
    """Candidate code differs from the pending one."""


class OTPExpiredError(OTPError):
    """Pending code is past its expiry."""

    def __init__(self, message: str = "OTP expired", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class StorageError(SoltarException):
    """Backing store unreachable, timed out or returned unreadable data."""

    status_code = 503

    def __init__(self, message: str = "Storage unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("STORAGE_ERROR", message, details)
