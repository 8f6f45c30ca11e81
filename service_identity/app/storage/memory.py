"""
In-memory fallback store.
"""

import asyncio
from typing import Dict

from .base import KeyValueStore, KeyNotFoundError


class MemoryStore(KeyValueStore):
    """Process-local store guarded by one lock over the whole mapping.

    Contents are lost on restart. Only selected when the durable backend
    cannot be reached at startup.
    """

    backend_name = "memory"
    durable = False

    def __init__(self):
        self._data: Dict[str, bytes] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> bytes:
        async with self._lock:
            try:
                return self._data[key]
            except KeyError:
                raise KeyNotFoundError(key) from None

    async def put(self, key: str, value: bytes) -> None:
        async with self._lock:
            self._data[key] = bytes(value)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._data.pop(key, None)

    async def put_if_absent(self, key: str, value: bytes) -> bool:
        async with self._lock:
            if key in self._data:
                return False
            self._data[key] = bytes(value)
            return True

    async def compare_and_set(self, key: str, expected: bytes, value: bytes) -> bool:
        async with self._lock:
            if self._data.get(key) != expected:
                return False
            self._data[key] = bytes(value)
            return True

    async def compare_and_delete(self, key: str, expected: bytes) -> bool:
        async with self._lock:
            if self._data.get(key) != expected:
                return False
            del self._data[key]
            return True

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data
