"""Types for the OpenAI-compatible surface the proxy presents.

Only the subset of the chat-completions schema that the proxy actually
produces is modelled here: a single assistant choice, an all-zero usage
block, and the incremental chunk shape used for streaming.
"""

from typing import Optional

from typing_extensions import Literal, TypedDict


class ChatMessage(TypedDict):
    """A complete assistant message in a non-streaming response."""
    role: Literal["assistant"]
    content: str


class Choice(TypedDict):
    index: int
    message: ChatMessage
    finish_reason: Literal["stop"]


class Usage(TypedDict):
    """Token accounting. The backend reports none, so every field is 0."""
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class ChatCompletion(TypedDict):
    id: str
    object: Literal["chat.completion"]
    created: int
    model: str
    choices: list[Choice]
    usage: Usage


class ChoiceDelta(TypedDict):
    content: str


class ChunkChoice(TypedDict):
    """One incremental choice.

    Attributes:
        index: Always 0; the backend is asked for a single candidate.
        delta: The newly generated text.
        finish_reason: Always None; the ``[DONE]`` sentinel ends the stream.
    """
    index: int
    delta: ChoiceDelta
    finish_reason: Optional[str]


class ChatCompletionChunk(TypedDict):
    id: str
    object: Literal["chat.completion.chunk"]
    created: int
    model: str
    choices: list[ChunkChoice]
