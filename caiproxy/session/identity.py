"""Routing identifier ("tgt") resolution."""

from __future__ import annotations

import logging
from typing import Optional

from ..backend.client import CHARACTER_INFO_PATH, BackendClient
from ..core.exceptions import MalformedResponseError
from ..logging import credential_tag
from ..store.base import KeyValueStore
from ..usage_metrics import USAGE_COUNTERS
from .keys import TGT_KIND, CacheKeys

logger = logging.getLogger("caiproxy.session")


def extract_identifier(payload) -> str:
    character = payload.get("character") if isinstance(payload, dict) else None
    identifier = character.get("identifier") if isinstance(character, dict) else None
    if not isinstance(identifier, str) or not identifier:
        raise MalformedResponseError("character info response has no identifier")
    return identifier


class IdentityResolver:
    """Look up the routing identifier for a conversation partner."""

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

    async def resolve(
        self,
        credential: str,
        partner_id: str,
        csrf_token: Optional[str] = None,
    ) -> str:
        key = self.keys.tgt(credential, partner_id)
        cached = await self.store.get(key)
        if cached:
            USAGE_COUNTERS.record_cache(TGT_KIND, hit=True)
            return cached

        USAGE_COUNTERS.record_cache(TGT_KIND, hit=False)
        logger.info(
            "Fetching routing identifier for %s (credential %s)",
            partner_id,
            credential_tag(credential),
        )
        payload = await self.client.post_json(
            CHARACTER_INFO_PATH,
            credential,
            {"external_id": partner_id},
            csrf_token=csrf_token,
        )
        tgt = extract_identifier(payload)
        await self.store.set(key, tgt, self.ttl_seconds)
        return tgt
