"""In-memory usage counters for realtime usage reporting."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any


class RequestTracker:
    """Track a single request lifecycle for in-memory counters."""

    def __init__(self, counters: "UsageCounters") -> None:
        self._counters = counters
        self._finished = False

    def finish(self) -> None:
        if self._finished:
            return
        self._finished = True
        self._counters.finish_request()


@dataclass
class UsageCounters:
    """Thread-safe counters for requests, streams and session cache lookups."""

    _lock: Lock = field(default_factory=Lock, repr=False)
    _started_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    _received: int = 0
    _served: int = 0
    _ongoing: int = 0
    _streams: Counter = field(default_factory=Counter)
    _cache_hits: Counter = field(default_factory=Counter)
    _cache_misses: Counter = field(default_factory=Counter)

    def start_request(self) -> RequestTracker:
        with self._lock:
            self._received += 1
            self._ongoing += 1
        return RequestTracker(self)

    def finish_request(self) -> None:
        with self._lock:
            self._served += 1
            self._ongoing = max(0, self._ongoing - 1)

    def record_stream(self, outcome: str) -> None:
        """Count a finished stream by outcome: completed, interrupted or cancelled."""
        with self._lock:
            self._streams[outcome] += 1

    def record_cache(self, kind: str, *, hit: bool) -> None:
        with self._lock:
            if hit:
                self._cache_hits[kind] += 1
            else:
                self._cache_misses[kind] += 1

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "started_at": self._started_at,
                "received": self._received,
                "served": self._served,
                "ongoing": self._ongoing,
                "streams": dict(self._streams),
                "cache": {
                    "hits": dict(self._cache_hits),
                    "misses": dict(self._cache_misses),
                },
            }

    def reset(self) -> None:
        with self._lock:
            self._received = 0
            self._served = 0
            self._ongoing = 0
            self._streams.clear()
            self._cache_hits.clear()
            self._cache_misses.clear()


USAGE_COUNTERS = UsageCounters()


def build_usage_snapshot() -> dict[str, Any]:
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "realtime": USAGE_COUNTERS.snapshot(),
    }
