"""Translation from backend replies to chat-completion responses."""

from .stream_adapter import StreamAdapter, translate_stream
from .translator import build_chat_chunk, build_chat_completion, new_completion_id

__all__ = [
    "StreamAdapter",
    "build_chat_chunk",
    "build_chat_completion",
    "new_completion_id",
    "translate_stream",
]
