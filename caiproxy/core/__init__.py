"""Core module initialization."""

from .exceptions import (
    InvalidRequestError,
    MalformedResponseError,
    MethodNotAllowedError,
    MissingTokenError,
    ProxyError,
    TransportInterruptedError,
    UnauthorizedError,
    UpstreamUnavailableError,
)
from .registry import get_gateway, set_gateway
from .sse import SSE_DONE, NDJSONLineBuffer, encode_sse_frame

__all__ = [
    "InvalidRequestError",
    "MalformedResponseError",
    "MethodNotAllowedError",
    "MissingTokenError",
    "NDJSONLineBuffer",
    "ProxyError",
    "SSE_DONE",
    "TransportInterruptedError",
    "UnauthorizedError",
    "UpstreamUnavailableError",
    "encode_sse_frame",
    "get_gateway",
    "set_gateway",
]
