"""Build OpenAI-compatible completion envelopes from backend replies."""

from __future__ import annotations

import time
import uuid
from typing import Optional

from ..types.backend import BackendReply
from ..types.chat import ChatCompletion, ChatCompletionChunk


def new_completion_id() -> str:
    return f"chatcmpl-{uuid.uuid4().hex}"


def build_chat_completion(
    reply: BackendReply,
    model: str,
    *,
    completion_id: Optional[str] = None,
    created: Optional[int] = None,
) -> ChatCompletion:
    """Wrap a complete reply as a single-choice ``chat.completion``.

    Usage counters are all zero because the backend does not report tokens.
    """
    return {
        "id": completion_id or new_completion_id(),
        "object": "chat.completion",
        "created": created if created is not None else int(time.time()),
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": reply.text_or_placeholder()},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0},
    }


def build_chat_chunk(
    content: str,
    model: str,
    *,
    completion_id: str,
    created: int,
) -> ChatCompletionChunk:
    return {
        "id": completion_id,
        "object": "chat.completion.chunk",
        "created": created,
        "model": model,
        "choices": [{"index": 0, "delta": {"content": content}, "finish_reason": None}],
    }
