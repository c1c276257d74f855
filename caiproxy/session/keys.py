"""Cache key namespace.

Every key is ``<prefix>:<kind>:<credential digest>[:<partner id>]``. The kind
tags are distinct so keys for different entities never collide, and the
digest is hex so it never contains the ``:`` delimiter.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

CSRF_KIND = "csrf"
TGT_KIND = "tgt"
HISTORY_KIND = "chat"


def credential_digest(credential: str) -> str:
    return hashlib.sha256(credential.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class CacheKeys:
    prefix: str = "cai"

    def _key(self, kind: str, credential: str, *parts: str) -> str:
        return ":".join((self.prefix, kind, credential_digest(credential), *parts))

    def csrf(self, credential: str) -> str:
        return self._key(CSRF_KIND, credential)

    def tgt(self, credential: str, partner_id: str) -> str:
        return self._key(TGT_KIND, credential, partner_id)

    def history(self, credential: str, partner_id: str) -> str:
        return self._key(HISTORY_KIND, credential, partner_id)
