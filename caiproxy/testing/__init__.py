"""Testing utilities for in-process proxy simulations."""

from .fake_backend import (
    HISTORY,
    INFO,
    PRIME,
    SEND,
    FakeBackend,
    FakeBackendTransport,
    SendReply,
    candidate_fragment,
    encode_fragments,
)
from .proxy_harness import BACKEND_URL, ProxyHarness, build_settings

__all__ = [
    "BACKEND_URL",
    "FakeBackend",
    "FakeBackendTransport",
    "HISTORY",
    "INFO",
    "PRIME",
    "ProxyHarness",
    "SEND",
    "SendReply",
    "build_settings",
    "candidate_fragment",
    "encode_fragments",
]
