"""OpenAI-compatible chat completions endpoint."""

import json
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import ClientDisconnect

from ...core.exceptions import (
    InvalidRequestError,
    MethodNotAllowedError,
    ProxyError,
    UnauthorizedError,
)
from ...core.registry import get_gateway
from ...gateway import ReplyStream
from ...usage_metrics import USAGE_COUNTERS, RequestTracker

logger = logging.getLogger("caiproxy")

MIN_PARTNER_ID_LENGTH = 20
DEFAULT_MAX_BODY_BYTES = 1024 * 1024

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


@dataclass(frozen=True)
class ChatRequest:
    """A validated caller request.

    Only the last message is kept; the backend conversation carries the
    earlier turns.
    """

    partner_id: str
    message: str
    stream: bool = False


def parse_chat_payload(body: bytes, max_body_bytes: int = DEFAULT_MAX_BODY_BYTES) -> ChatRequest:
    if len(body) > max_body_bytes:
        raise InvalidRequestError("Request body too large", status_code=413)
    try:
        payload = json.loads(body or b"null")
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidRequestError("Invalid JSON body") from exc
    if not isinstance(payload, Mapping):
        raise InvalidRequestError("Invalid JSON body")

    partner_id = payload.get("model")
    messages = payload.get("messages")
    if not partner_id or not messages or not isinstance(messages, list):
        raise InvalidRequestError("Missing model or messages")

    if not isinstance(partner_id, str) or len(partner_id) < MIN_PARTNER_ID_LENGTH:
        raise InvalidRequestError("Invalid model (must be character external ID)")

    stream = payload.get("stream", False)
    if stream is None:
        stream = False
    if not isinstance(stream, bool):
        raise InvalidRequestError("Invalid stream flag (must be a boolean)")

    last = messages[-1]
    content = last.get("content") if isinstance(last, Mapping) else None
    if not isinstance(content, str) or not content:
        raise InvalidRequestError("Invalid user message")

    return ChatRequest(partner_id=partner_id, message=content, stream=stream)


def extract_bearer(headers: Mapping[str, str]) -> str:
    auth_header = headers.get("authorization") or ""
    if not auth_header.startswith("Bearer "):
        raise UnauthorizedError("Invalid token")
    token = auth_header[len("Bearer "):].strip()
    if not token:
        raise UnauthorizedError("Invalid token")
    return token


def error_response(
    status_code: int, message: str, headers: Optional[Mapping[str, str]] = None
) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


async def proxy_error_handler(request: Request, exc: ProxyError) -> JSONResponse:
    """Render any ProxyError raised from a route as ``{"error": message}``."""
    return error_response(exc.status_code, exc.message)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render routing errors (unknown path, wrong method) with the same error body."""
    if exc.status_code == 405:
        error = MethodNotAllowedError("Method not allowed")
        return error_response(error.status_code, error.message, headers=exc.headers)
    return error_response(exc.status_code, str(exc.detail), headers=exc.headers)


async def _finish_stream(frames: ReplyStream, tracker: RequestTracker) -> None:
    try:
        await frames.aclose()
    finally:
        tracker.finish()


async def chat_completions(request: Request) -> Response:
    """Chat completions endpoint - OpenAI compatible.

    POST /v1/chat/completions
    """
    tracker = USAGE_COUNTERS.start_request()
    try:
        try:
            body = await request.body()
        except ClientDisconnect:
            logger.warning("Client disconnected while sending the request body")
            tracker.finish()
            return Response(status_code=499)

        gateway = get_gateway()
        chat_request = parse_chat_payload(body, gateway.settings.max_body_bytes)
        credential = extract_bearer(request.headers)
        logger.info(
            "Processing request for %s, stream=%s",
            chat_request.partner_id,
            chat_request.stream,
        )

        if chat_request.stream:
            frames = await gateway.stream(
                credential,
                chat_request.partner_id,
                chat_request.message,
                disconnect_checker=request.is_disconnected,
            )
            return StreamingResponse(
                frames,
                status_code=200,
                media_type="text/plain",
                headers=STREAM_HEADERS,
                background=BackgroundTask(_finish_stream, frames, tracker),
            )

        completion = await gateway.complete(
            credential, chat_request.partner_id, chat_request.message
        )
        tracker.finish()
        return JSONResponse(status_code=200, content=completion)
    except ProxyError as exc:
        if exc.status_code >= 500:
            logger.error("Request failed: %s", exc.message)
        else:
            logger.info("Rejected request: %s", exc.message)
        tracker.finish()
        return error_response(exc.status_code, exc.message)
    except Exception as exc:
        logger.exception("Unexpected error while processing request")
        tracker.finish()
        return error_response(500, str(exc) or exc.__class__.__name__)
