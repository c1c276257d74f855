"""Anti-forgery token resolution."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from ..backend.client import BackendClient
from ..core.exceptions import MissingTokenError
from ..logging import credential_tag
from ..store.base import KeyValueStore
from ..usage_metrics import USAGE_COUNTERS
from .keys import CSRF_KIND, CacheKeys

logger = logging.getLogger("caiproxy.session")


def extract_cookie(set_cookie_headers: Iterable[str], name: str) -> Optional[str]:
    """Find cookie ``name`` in a sequence of ``Set-Cookie`` header values.

    Each header is a semicolon-delimited list; only ``name=value`` pairs are
    considered, so attributes like ``Path`` or ``HttpOnly`` never match.
    """
    for header in set_cookie_headers:
        for part in header.split(";"):
            key, sep, value = part.strip().partition("=")
            if sep and key.strip() == name:
                value = value.strip().strip('"')
                if value:
                    return value
    return None


class CsrfResolver:
    """Return a valid anti-forgery token for a credential, priming on miss."""

    def __init__(
        self,
        store: KeyValueStore,
        client: BackendClient,
        keys: CacheKeys,
        ttl_seconds: int = 3600,
    ) -> None:
        self.store = store
        self.client = client
        self.keys = keys
        self.ttl_seconds = ttl_seconds

    async def resolve(self, credential: str) -> str:
        key = self.keys.csrf(credential)
        cached = await self.store.get(key)
        if cached:
            USAGE_COUNTERS.record_cache(CSRF_KIND, hit=True)
            return cached

        USAGE_COUNTERS.record_cache(CSRF_KIND, hit=False)
        logger.info("Priming anti-forgery token for credential %s", credential_tag(credential))
        response = await self.client.prime(credential)
        cookie_name = self.client.settings.csrf_cookie_name
        token = extract_cookie(response.headers.get_list("set-cookie"), cookie_name)
        if not token:
            raise MissingTokenError(f"backend did not set the {cookie_name} cookie")

        await self.store.set(key, token, self.ttl_seconds)
        return token
