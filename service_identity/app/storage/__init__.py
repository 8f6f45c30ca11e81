"""
Key-value storage for the identity service.
"""

from .base import KeyValueStore, KeyNotFoundError
from .memory import MemoryStore
from .redis_store import RedisStore
from .factory import connect_store

__all__ = [
    "KeyValueStore",
    "KeyNotFoundError",
    "MemoryStore",
    "RedisStore",
    "connect_store",
]
