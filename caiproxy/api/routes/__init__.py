"""API routes for the proxy."""

from .chat import (
    chat_completions,
    extract_bearer,
    http_error_handler,
    parse_chat_payload,
    proxy_error_handler,
)
from .usage import router as usage_router

__all__ = [
    "chat_completions",
    "extract_bearer",
    "http_error_handler",
    "parse_chat_payload",
    "proxy_error_handler",
    "usage_router",
]
