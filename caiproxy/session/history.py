"""Conversation handle ("history id") management."""

from __future__ import annotations

import logging
from typing import Optional

from ..backend.client import HISTORY_CREATE_PATH, BackendClient
from ..core.exceptions import MalformedResponseError
from ..logging import credential_tag
from ..store.base import KeyValueStore
from ..usage_metrics import USAGE_COUNTERS
from .keys import HISTORY_KIND, CacheKeys

logger = logging.getLogger("caiproxy.session")

DEFAULT_HISTORY_TTL = 86400 * 7


def extract_history_id(payload) -> str:
    history_id = payload.get("external_id") if isinstance(payload, dict) else None
    if not isinstance(history_id, str) or not history_id:
        raise MalformedResponseError("history create response has no external_id")
    return history_id


class HistoryManager:
    """Reuse one conversation per (credential, partner), creating it on first use.

    Cached handles are trusted as-is. If the backend has forgotten one, the
    send fails and the error reaches the caller; the handle is not replaced
    until it expires from the store.
    """

    def __init__(
        self,
        store: KeyValueStore,
        client: BackendClient,
        keys: CacheKeys,
        ttl_seconds: int = DEFAULT_HISTORY_TTL,
    ) -> None:
        self.store = store
        self.client = client
        self.keys = keys
        self.ttl_seconds = ttl_seconds

    async def resolve(
        self,
        credential: str,
        partner_id: str,
        csrf_token: Optional[str] = None,
    ) -> str:
        key = self.keys.history(credential, partner_id)
        cached = await self.store.get(key)
        if cached:
            USAGE_COUNTERS.record_cache(HISTORY_KIND, hit=True)
            logger.debug("Continuing conversation %s with %s", cached, partner_id)
            return cached

        USAGE_COUNTERS.record_cache(HISTORY_KIND, hit=False)
        payload = await self.client.post_json(
            HISTORY_CREATE_PATH,
            credential,
            {"character_external_id": partner_id, "history_external_id": None},
            csrf_token=csrf_token,
        )
        history_id = extract_history_id(payload)
        logger.info(
            "Started conversation %s with %s (credential %s)",
            history_id,
            partner_id,
            credential_tag(credential),
        )
        await self.store.set(key, history_id, self.ttl_seconds)
        return history_id

    async def touch(self, credential: str, partner_id: str, history_id: str) -> None:
        """Restart the expiry window after a successful send."""
        await self.store.set(self.keys.history(credential, partner_id), history_id, self.ttl_seconds)
