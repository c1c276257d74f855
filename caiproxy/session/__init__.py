"""Per-user session state: anti-forgery tokens, routing ids, conversations."""

from .csrf import CsrfResolver, extract_cookie
from .history import HistoryManager
from .identity import IdentityResolver
from .keys import CacheKeys, credential_digest

__all__ = [
    "CacheKeys",
    "CsrfResolver",
    "HistoryManager",
    "IdentityResolver",
    "credential_digest",
    "extract_cookie",
]
