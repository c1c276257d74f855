"""Type definitions for the proxy."""

from .backend import NO_RESPONSE_TEXT, BackendReply
from .chat import (
    ChatCompletion,
    ChatCompletionChunk,
    ChatMessage,
    Choice,
    ChoiceDelta,
    ChunkChoice,
    Usage,
)

__all__ = [
    "BackendReply",
    "ChatCompletion",
    "ChatCompletionChunk",
    "ChatMessage",
    "Choice",
    "ChoiceDelta",
    "ChunkChoice",
    "NO_RESPONSE_TEXT",
    "Usage",
]
