"""Send a user message to the backend."""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

import httpx

from ..core.exceptions import MalformedResponseError
from ..types.backend import BackendReply
from .client import SEND_MESSAGE_PATH, BackendClient

logger = logging.getLogger("caiproxy.backend")

NUM_CANDIDATES = 1


@dataclass(frozen=True)
class SendTarget:
    """Everything the handshake resolved for one message."""

    credential: str
    partner_id: str
    tgt: str
    history_id: str
    csrf_token: Optional[str] = None


def build_send_payload(
    target: SendTarget,
    text: str,
    *,
    stream_every_n_steps: int,
    ranking_method: str = "random",
) -> dict[str, Any]:
    return {
        "history_external_id": target.history_id,
        "character_external_id": target.partner_id,
        "text": text,
        "tgt": target.tgt,
        "ranking_method": ranking_method,
        "num_candidates": NUM_CANDIDATES,
        "stream_every_n_steps": stream_every_n_steps,
    }


def parse_complete_reply(body: bytes) -> BackendReply:
    """Parse a non-streaming send response.

    The send endpoint answers with newline-delimited documents even when
    asked for coarse cadence. The last document carrying reply text wins;
    trailing status documents without text do not clear it.
    """
    text = body.decode("utf-8", errors="replace").strip()
    if not text:
        raise MalformedResponseError("backend returned an empty reply")
    try:
        return BackendReply.from_payload(json.loads(text))
    except json.JSONDecodeError:
        pass

    last: Optional[BackendReply] = None
    last_with_text: Optional[BackendReply] = None
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            last = BackendReply.from_payload(json.loads(line))
        except json.JSONDecodeError:
            logger.debug("Skipping non-JSON line in reply: %r", line[:80])
            continue
        if last.text:
            last_with_text = last
    if last is None:
        raise MalformedResponseError("backend reply contained no JSON document")
    return last_with_text or last


class MessageDispatcher:
    """Issue the send call in either delivery mode."""

    def __init__(self, client: BackendClient) -> None:
        self.client = client

    def _payload(self, target: SendTarget, text: str, stream: bool) -> dict[str, Any]:
        settings = self.client.settings
        return build_send_payload(
            target,
            text,
            stream_every_n_steps=(
                settings.stream_every_n_steps if stream else settings.batch_every_n_steps
            ),
            ranking_method=settings.ranking_method,
        )

    async def send(self, target: SendTarget, text: str) -> BackendReply:
        """Send ``text`` and wait for the whole reply."""
        payload = self._payload(target, text, stream=False)
        async with self.client.stream_post(
            SEND_MESSAGE_PATH, target.credential, payload, target.csrf_token
        ) as response:
            body = await response.aread()
        return parse_complete_reply(body)

    @asynccontextmanager
    async def open_stream(self, target: SendTarget, text: str) -> AsyncIterator[httpx.Response]:
        """Send ``text`` and yield the backend response for incremental reads."""
        payload = self._payload(target, text, stream=True)
        async with self.client.stream_post(
            SEND_MESSAGE_PATH, target.credential, payload, target.csrf_token
        ) as response:
            yield response
