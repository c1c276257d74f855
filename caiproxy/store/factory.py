"""Store factory selecting a backend from configuration."""

import logging

from ..config_loader import StoreSettings
from .base import KeyValueStore
from .memory import MemoryStore
from .redis_store import RedisStore

logger = logging.getLogger("caiproxy.store")


def create_store(settings: StoreSettings) -> KeyValueStore:
    """Build the configured store.

    Raises:
        ValueError: If an unsupported store backend is specified, or redis is
            selected without a URL.
    """
    backend = (settings.backend or "memory").lower()

    if backend == "memory":
        store: KeyValueStore = MemoryStore()
    elif backend == "redis":
        if not settings.url:
            raise ValueError("store.url is required for the redis backend")
        store = RedisStore.from_url(settings.url, socket_timeout=settings.socket_timeout)
    else:
        raise ValueError(f"Unsupported store backend: {backend}. Supported backends: memory, redis")

    logger.info("Store factory created %s store", store.backend_name)
    return store
