"""Abstract key-value store used as a session cache."""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStore(ABC):
    """Minimal get/set-with-expiry capability shared by every resolver.

    Values are strings. Reads tolerate absence; writes are blind overwrites.
    """

    backend_name: str = "abstract"

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the value stored under ``key``, or None if absent or expired."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store ``value`` under ``key``, expiring after ``ttl_seconds``."""

    async def close(self) -> None:
        """Release any connections held by the store."""
        return None
