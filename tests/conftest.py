"""Pytest configuration and fixtures for testing."""

from __future__ import annotations

from typing import Any, AsyncIterator, Generator

import httpx
import pytest
import pytest_asyncio

from caiproxy.backend import BackendClient
from caiproxy.config_loader import BackendSettings
from caiproxy.testing import BACKEND_URL, FakeBackend

PARTNER_ID = "char-external-id-0123456789"
CREDENTIAL = "user-session-token"


@pytest.fixture(autouse=True)
def reset_usage_counters() -> Generator[None, None, None]:
    """Start every test with empty in-memory usage counters."""
    from caiproxy.usage_metrics import USAGE_COUNTERS

    USAGE_COUNTERS.reset()
    yield
    USAGE_COUNTERS.reset()


# =============================================================================
# Fake backend fixtures
# =============================================================================


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def backend_settings() -> BackendSettings:
    return BackendSettings(base_url=BACKEND_URL)


@pytest_asyncio.fixture
async def backend_client(
    fake_backend: FakeBackend, backend_settings: BackendSettings
) -> AsyncIterator[BackendClient]:
    """A BackendClient whose HTTP calls land on ``fake_backend``."""
    http = httpx.AsyncClient(
        base_url=BACKEND_URL,
        transport=fake_backend.transport(),
    )
    try:
        yield BackendClient(http, backend_settings)
    finally:
        await http.aclose()


# =============================================================================
# Helper Functions for Tests
# =============================================================================


def chat_body(
    content: str = "Hello there",
    *,
    model: str = PARTNER_ID,
    stream: Any = None,
    history: int = 0,
) -> dict[str, Any]:
    """Build a chat-completions request body.

    Args:
        content: Content of the last (the only consulted) message.
        model: Conversation partner id.
        stream: Value for ``stream``; omitted when None.
        history: Number of earlier messages to prepend.
    """
    messages: list[dict[str, Any]] = [
        {"role": "user" if i % 2 == 0 else "assistant", "content": f"earlier {i}"}
        for i in range(history)
    ]
    messages.append({"role": "user", "content": content})
    body: dict[str, Any] = {"model": model, "messages": messages}
    if stream is not None:
        body["stream"] = stream
    return body


def auth_headers(credential: str = CREDENTIAL) -> dict[str, str]:
    return {"Authorization": f"Bearer {credential}"}


def parse_sse_frames(text: str) -> list[str]:
    """Split an SSE body into its ``data:`` payloads."""
    frames = []
    for block in text.split("\n\n"):
        if not block:
            continue
        assert block.startswith("data: "), block
        frames.append(block[len("data: "):])
    return frames
