"""API module for the proxy."""

from .routes import chat_completions, http_error_handler, proxy_error_handler, usage_router

__all__ = [
    "chat_completions",
    "http_error_handler",
    "proxy_error_handler",
    "usage_router",
]
