"""Session backend client and message dispatch."""

from .client import (
    CHARACTER_INFO_PATH,
    HISTORY_CREATE_PATH,
    ROOT_PATH,
    SEND_MESSAGE_PATH,
    BackendClient,
    build_http_client,
    format_httpx_error,
)
from .dispatcher import MessageDispatcher, SendTarget, build_send_payload, parse_complete_reply

__all__ = [
    "BackendClient",
    "CHARACTER_INFO_PATH",
    "HISTORY_CREATE_PATH",
    "MessageDispatcher",
    "ROOT_PATH",
    "SEND_MESSAGE_PATH",
    "SendTarget",
    "build_http_client",
    "build_send_payload",
    "format_httpx_error",
    "parse_complete_reply",
]
