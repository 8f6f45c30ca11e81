"""
Redis-backed durable store.
"""

from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.errors import StorageError
from shared.logging import get_logger
from .base import KeyValueStore, KeyNotFoundError

# Both scripts run atomically on the server and compare the stored value byte for byte with ARGV[1]
COMPARE_AND_SET_SCRIPT = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
    redis.call("SET", KEYS[1], ARGV[2])
    return 1
end
return 0
"""

COMPARE_AND_DELETE_SCRIPT = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
    return redis.call("DEL", KEYS[1])
end
return 0
"""


class RedisStore(KeyValueStore):
    """Durable store on a network-attached Redis.

    Every command is bounded by the client's socket timeouts so a slow
    server fails the call instead of stalling the request.
    """

    backend_name = "redis"
    durable = True

    def __init__(self, redis_url: str, timeout: float = 5.0, client: Optional[redis.Redis] = None):
        self.redis_url = redis_url
        self.timeout = timeout
        self.logger = get_logger("identity.storage.redis")
        self.redis: Optional[redis.Redis] = client

    async def connect(self) -> None:
        """Open the client and verify the server answers PING."""
        try:
            if self.redis is None:
                self.redis = redis.from_url(
                    self.redis_url,
                    socket_connect_timeout=self.timeout,
                    socket_timeout=self.timeout,
                    health_check_interval=30,
                )

            # Test connection
            await self.redis.ping()

        except (RedisError, OSError, ValueError) as e:
            await self._discard_client()
            raise StorageError(f"Failed to connect to Redis: {e}") from e

        self.logger.info("Redis store connected", redis_url=redact_url(self.redis_url))

    async def get(self, key: str) -> bytes:
        try:
            data = await self._client().get(key)
        except RedisError as e:
            self.logger.error("Redis get failed", key=key, error=str(e))
            raise StorageError() from e

        if data is None:
            self.logger.debug("Redis get miss", key=key)
            raise KeyNotFoundError(key)

        self.logger.debug("Redis get hit", key=key, size=len(data))
        return data

    async def put(self, key: str, value: bytes) -> None:
        try:
            await self._client().set(key, value)
        except RedisError as e:
            self.logger.error("Redis put failed", key=key, error=str(e))
            raise StorageError() from e

        self.logger.debug("Redis put", key=key, size=len(value))

    async def delete(self, key: str) -> None:
        try:
            await self._client().delete(key)
        except RedisError as e:
            self.logger.error("Redis delete failed", key=key, error=str(e))
            raise StorageError() from e

    async def put_if_absent(self, key: str, value: bytes) -> bool:
        try:
            written = await self._client().set(key, value, nx=True)
        except RedisError as e:
            self.logger.error("Redis conditional put failed", key=key, error=str(e))
            raise StorageError() from e

        return bool(written)

    async def compare_and_set(self, key: str, expected: bytes, value: bytes) -> bool:
        try:
            swapped = await self._client().eval(COMPARE_AND_SET_SCRIPT, 1, key, expected, value)
        except RedisError as e:
            self.logger.error("Redis compare-and-set failed", key=key, error=str(e))
            raise StorageError() from e

        return bool(swapped)

    async def compare_and_delete(self, key: str, expected: bytes) -> bool:
        try:
            removed = await self._client().eval(COMPARE_AND_DELETE_SCRIPT, 1, key, expected)
        except RedisError as e:
            self.logger.error("Redis compare-and-delete failed", key=key, error=str(e))
            raise StorageError() from e

        return bool(removed)

    async def ping(self) -> bool:
        try:
            return bool(await self._client().ping())
        except (RedisError, StorageError):
            return False

    async def close(self) -> None:
        if self.redis is not None:
            await self._discard_client()
            self.logger.info("Redis store closed")

    def _client(self) -> redis.Redis:
        if self.redis is None:
            raise StorageError("Redis store is not connected")
        return self.redis

    async def _discard_client(self) -> None:
        client, self.redis = self.redis, None
        if client is None:
            return
        try:
            await client.aclose()
        except RedisError as e:
            self.logger.debug("Ignoring error while closing Redis client", error=str(e))


def redact_url(url: str) -> str:
    """Strip credentials from a Redis URL before logging it."""
    scheme, sep, rest = url.partition("://")
    if not sep or "@" not in rest:
        return url
    return f"{scheme}://***@{rest.rsplit('@', 1)[1]}"
