"""Session cache stores."""

from .base import KeyValueStore
from .factory import create_store
from .memory import MemoryStore
from .redis_store import RedisStore

__all__ = [
    "KeyValueStore",
    "MemoryStore",
    "RedisStore",
    "create_store",
]
