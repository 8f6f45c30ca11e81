"""
Tests for startup storage selection.
"""

import pytest
from unittest.mock import patch

from service_identity.app.storage import MemoryStore, RedisStore, connect_store
from shared.config import ServiceConfig
from shared.errors import StorageError
from shared.test_helpers import MockEnvironment


class TestConnectStore:
    """Test cases for connect_store."""

    @pytest.fixture
    def config(self):
        """Config with three quick connection attempts."""
        overrides = MockEnvironment.get_config_overrides()
        overrides["redis_connect_attempts"] = 3
        return ServiceConfig(service_name="identity", **overrides)

    @pytest.mark.asyncio
    async def test_uses_redis_when_reachable(self, config):
        """A successful connect keeps the durable backend."""
        calls = []

        async def accept(self):
            calls.append(self.redis_url)

        with patch.object(RedisStore, "connect", accept):
            store = await connect_store(config)

        assert isinstance(store, RedisStore)
        assert store.durable is True
        assert calls == [config.redis_url]

    @pytest.mark.asyncio
    async def test_falls_back_to_memory_after_all_attempts(self, config):
        """Every attempt is made before degrading to the in-memory store."""
        calls = []

        async def refuse(self):
            calls.append(1)
            raise StorageError("Failed to connect to Redis: Connection refused")

        with patch.object(RedisStore, "connect", refuse):
            store = await connect_store(config)

        assert isinstance(store, MemoryStore)
        assert store.durable is False
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_recovers_on_later_attempt(self, config):
        """A transient failure during startup does not force the fallback."""
        calls = []

        async def flaky(self):
            calls.append(1)
            if len(calls) < 2:
                raise StorageError("Failed to connect to Redis: Connection refused")

        with patch.object(RedisStore, "connect", flaky):
            store = await connect_store(config)

        assert isinstance(store, RedisStore)
        assert len(calls) == 2
