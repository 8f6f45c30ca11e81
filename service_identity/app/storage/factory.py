"""
Startup-time selection of the storage backend.
"""

from shared.config import BaseConfig
from shared.errors import StorageError
from shared.logging import get_logger
from shared.retry import RetryConfig, RetryError, retry_on_exception
from .base import KeyValueStore
from .memory import MemoryStore
from .redis_store import RedisStore, redact_url

logger = get_logger("identity.storage")


async def connect_store(config: BaseConfig) -> KeyValueStore:
    """Connect to Redis, retrying with fixed backoff, else fall back to memory.

    This runs once during application startup. Individual store calls are
    never retried.
    """
    store = RedisStore(config.redis_url, timeout=config.store_timeout_seconds)
    retry_config = RetryConfig(
        max_attempts=config.redis_connect_attempts,
        delay=config.redis_connect_backoff_seconds,
    )
    connect = retry_on_exception((StorageError,), retry_config)(store.connect)

    try:
        await connect()
    except RetryError as e:
        logger.warning(
            "Redis unreachable, using in-memory storage; data will not survive a restart",
            redis_url=redact_url(config.redis_url),
            attempts=e.attempts,
            error=str(e.last_exception),
        )
        return MemoryStore()

    logger.info("Using Redis storage", redis_url=redact_url(config.redis_url))
    return store
