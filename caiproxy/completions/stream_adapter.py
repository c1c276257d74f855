"""Translate the backend's newline-delimited JSON stream into SSE frames.

The backend writes one JSON document per line while a reply is generated.
Each document that carries candidate text becomes exactly one
``chat.completion.chunk`` frame, emitted as soon as its line is complete and
in the order the lines arrive. When the backend closes the stream the
``[DONE]`` sentinel is written; it is the only terminal signal.
"""

from __future__ import annotations

import json
import logging
import time
from typing import AsyncIterable, AsyncIterator, Awaitable, Callable, List, Optional

import httpx

from ..core.exceptions import TransportInterruptedError
from ..core.sse import SSE_DONE, NDJSONLineBuffer, encode_sse_frame
from ..types.backend import BackendReply
from ..usage_metrics import USAGE_COUNTERS
from .translator import build_chat_chunk, new_completion_id

logger = logging.getLogger("caiproxy.stream")

DisconnectChecker = Callable[[], Awaitable[bool]]


class StreamAdapter:
    """Stateful converter from raw backend reads to outbound frames."""

    def __init__(
        self,
        model: str,
        *,
        completion_id: Optional[str] = None,
        created: Optional[int] = None,
    ) -> None:
        self.model = model
        self.completion_id = completion_id or new_completion_id()
        self.created = created if created is not None else int(time.time())
        self.buffer = NDJSONLineBuffer()
        self.chunk_count = 0
        self.skipped_count = 0
        self.finished = False

    def _frames_for(self, lines: List[str]) -> List[bytes]:
        frames: List[bytes] = []
        for line in lines:
            try:
                payload = json.loads(line)
            except json.JSONDecodeError:
                # Keep-alive noise and truncated lines are expected here
                self.skipped_count += 1
                logger.debug("Skipping non-JSON stream fragment: %r", line[:80])
                continue
            text = BackendReply.from_payload(payload).text
            if not text:
                continue
            self.chunk_count += 1
            frames.append(
                encode_sse_frame(
                    build_chat_chunk(
                        text,
                        self.model,
                        completion_id=self.completion_id,
                        created=self.created,
                    )
                )
            )
        return frames

    def feed(self, chunk: bytes) -> List[bytes]:
        """Consume one network read and return the frames it completed."""
        return self._frames_for(self.buffer.feed(chunk))

    def finish(self) -> List[bytes]:
        """Drain the carry-over buffer and append the sentinel."""
        frames = self._frames_for(self.buffer.flush())
        frames.append(SSE_DONE)
        self.finished = True
        return frames


async def _read_chunks(chunks: AsyncIterable[bytes]) -> AsyncIterator[bytes]:
    try:
        async for chunk in chunks:
            yield chunk
    except httpx.TransportError as exc:
        raise TransportInterruptedError(f"backend stream interrupted: {exc!r}") from exc


async def translate_stream(
    chunks: AsyncIterable[bytes],
    adapter: StreamAdapter,
    *,
    disconnect_checker: Optional[DisconnectChecker] = None,
) -> AsyncIterator[bytes]:
    """Yield SSE frames for every backend read, then the sentinel.

    If the caller disconnects, reading stops before the next backend read.
    If the backend connection breaks, emission stops without the sentinel;
    the response status is already committed so there is nothing else to
    report to the caller.
    """
    reader = _read_chunks(chunks)
    try:
        while True:
            if disconnect_checker and await disconnect_checker():
                logger.info(
                    "Client disconnected after %d chunks; abandoning backend stream",
                    adapter.chunk_count,
                )
                USAGE_COUNTERS.record_stream("cancelled")
                return
            try:
                chunk = await reader.__anext__()
            except StopAsyncIteration:
                break
            for frame in adapter.feed(chunk):
                yield frame
    except TransportInterruptedError as exc:
        logger.warning("%s (after %d chunks)", exc.message, adapter.chunk_count)
        USAGE_COUNTERS.record_stream("interrupted")
        return
    finally:
        await reader.aclose()

    for frame in adapter.finish():
        yield frame
    USAGE_COUNTERS.record_stream("completed")
    logger.info(
        "Stream ended, chunks: %d (skipped fragments: %d)",
        adapter.chunk_count,
        adapter.skipped_count,
    )
