"""
Storage contract shared by the durable and in-memory backends.
"""

from abc import ABC, abstractmethod


class KeyNotFoundError(Exception):
    """Raised by ``KeyValueStore.get`` when the key holds no value.

    A miss is an expected outcome that callers branch on, so it is kept
    outside the service error taxonomy.
    """

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"key not found: {key}")


class KeyValueStore(ABC):
    """Byte-oriented get/put/delete store.

    Keys are opaque strings and values opaque bytes; callers own
    serialization. Failures other than a miss surface as
    ``shared.errors.StorageError``.
    """

    backend_name: str = "abstract"
    durable: bool = False

    @abstractmethod
    async def get(self, key: str) -> bytes:
        """Return the value for ``key`` or raise ``KeyNotFoundError``."""

    @abstractmethod
    async def put(self, key: str, value: bytes) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``. Deleting a missing key is not an error."""

    @abstractmethod
    async def put_if_absent(self, key: str, value: bytes) -> bool:
        """Store ``value`` only if ``key`` is unset. Returns True if written."""

    @abstractmethod
    async def compare_and_set(self, key: str, expected: bytes, value: bytes) -> bool:
        """Replace the value of ``key`` only while it still equals ``expected``.

        Returns False, writing nothing, when the key is missing or holds
        something else.
        """

    @abstractmethod
    async def compare_and_delete(self, key: str, expected: bytes) -> bool:
        """Remove ``key`` only while it still equals ``expected``. Returns True if removed."""

    async def ping(self) -> bool:
        """Report whether the backend is reachable."""
        return True

    async def close(self) -> None:
        """Release backend resources."""
