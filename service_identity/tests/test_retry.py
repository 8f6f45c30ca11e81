"""
Tests for the startup retry decorator.
"""

import pytest
from unittest.mock import AsyncMock, patch

from shared.errors import StorageError
from shared.retry import RetryConfig, RetryError, retry_on_exception


class TestRetryOnException:
    """Test cases for retry_on_exception."""

    @pytest.mark.asyncio
    async def test_waits_fixed_delay_between_attempts(self):
        """Every failed attempt but the last is followed by the same delay."""
        calls = []

        async def connect():
            calls.append(1)
            raise StorageError("Failed to connect to Redis: Connection refused")

        wrapped = retry_on_exception((StorageError,), RetryConfig(max_attempts=4, delay=5.0))(connect)

        with patch("shared.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(RetryError) as exc_info:
                await wrapped()

        assert len(calls) == 4
        assert [call.args[0] for call in mock_sleep.await_args_list] == [5.0, 5.0, 5.0]
        assert exc_info.value.attempts == 4
        assert isinstance(exc_info.value.last_exception, StorageError)
        assert exc_info.value.__cause__ is exc_info.value.last_exception

    @pytest.mark.asyncio
    async def test_returns_first_success(self):
        attempts = []

        async def connect():
            attempts.append(1)
            if len(attempts) < 3:
                raise StorageError()
            return "connected"

        wrapped = retry_on_exception((StorageError,), RetryConfig(max_attempts=5, delay=0.0))(connect)

        assert await wrapped() == "connected"
        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_other_exceptions_propagate(self):
        """Only the listed exception types are retried."""
        attempts = []

        async def connect():
            attempts.append(1)
            raise ValueError("bad url")

        wrapped = retry_on_exception((StorageError,), RetryConfig(max_attempts=3, delay=0.0))(connect)

        with pytest.raises(ValueError):
            await wrapped()
        assert len(attempts) == 1

    def test_negative_delay_is_clamped(self):
        assert RetryConfig(max_attempts=1, delay=-1.0).delay == 0.0
