"""Process-local store with per-key expiry."""

from __future__ import annotations

import time
from typing import Callable, Optional

from .base import KeyValueStore

# Seconds between full sweeps of expired entries, triggered from set().
DEFAULT_SWEEP_INTERVAL = 60.0


class MemoryStore(KeyValueStore):
    """Dict-backed store.

    Expired entries are dropped when read, and writes sweep the whole map at
    most once per ``sweep_interval`` seconds so keys that are never read
    again do not accumulate.
    """

    backend_name = "memory"

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
    ) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}
        self._sweep_interval = sweep_interval
        self._next_sweep = clock() + sweep_interval

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        now = self._clock()
        if now >= self._next_sweep:
            self.sweep()
        self._entries[key] = (value, now + ttl_seconds)

    def sweep(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        self._next_sweep = now + self._sweep_interval
        return len(expired)

    def ttl(self, key: str) -> Optional[float]:
        """Seconds left before ``key`` expires (None when absent)."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        remaining = entry[1] - self._clock()
        return remaining if remaining > 0 else None

    def keys(self) -> list[str]:
        now = self._clock()
        return [key for key, (_, expires_at) in self._entries.items() if expires_at > now]

    async def close(self) -> None:
        self._entries.clear()
