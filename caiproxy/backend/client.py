"""HTTP client for the session backend."""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping, Optional

import httpx

from ..config_loader import BackendSettings
from ..core.exceptions import MalformedResponseError, UpstreamUnavailableError

logger = logging.getLogger("caiproxy.backend")

ROOT_PATH = "/"
CHARACTER_INFO_PATH = "/chat/character/info/"
HISTORY_CREATE_PATH = "/chat/history/create/"
SEND_MESSAGE_PATH = "/chat/streaming/"


def build_http_client(
    settings: BackendSettings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create the shared client used for every backend call."""
    timeout = httpx.Timeout(
        connect=settings.connect_timeout,
        read=settings.read_timeout,
        write=settings.connect_timeout,
        pool=settings.connect_timeout,
    )
    return httpx.AsyncClient(
        base_url=settings.base_url,
        timeout=timeout,
        transport=transport,
        follow_redirects=True,
    )


def format_httpx_error(exc: httpx.HTTPError, settings: BackendSettings) -> str:
    """Produce a short description of an httpx error."""
    parts = [exc.__class__.__name__]
    message = str(exc).strip()
    if message:
        parts.append(message)
    try:
        request = exc.request
    except RuntimeError:
        request = None
    if request is not None:
        parts.append(f"request={request.method} {request.url.path}")
    if isinstance(exc, httpx.TimeoutException):
        parts.append(f"read_timeout={settings.read_timeout}s")
    return "; ".join(parts)


def _decode_json(body: bytes, path: str) -> Any:
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedResponseError(f"backend returned non-JSON body from {path}") from exc


class BackendClient:
    """Thin wrapper adding backend authentication and error mapping to httpx."""

    def __init__(self, http: httpx.AsyncClient, settings: BackendSettings) -> None:
        self.http = http
        self.settings = settings

    def build_headers(self, credential: str, csrf_token: Optional[str] = None) -> dict[str, str]:
        headers = {
            "Authorization": f"{self.settings.auth_scheme} {credential}",
            "Content-Type": "application/json",
            "User-Agent": self.settings.user_agent,
        }
        if csrf_token:
            headers["X-CSRFToken"] = csrf_token
            headers["Cookie"] = f"{self.settings.csrf_cookie_name}={csrf_token}"
        return headers

    async def prime(self, credential: str) -> httpx.Response:
        """GET the backend root; the response carries the anti-forgery cookie."""
        try:
            response = await self.http.get(ROOT_PATH, headers=self.build_headers(credential))
        except httpx.RequestError as exc:
            raise UpstreamUnavailableError(
                f"backend priming request failed ({format_httpx_error(exc, self.settings)})"
            ) from exc
        if not response.is_success:
            raise UpstreamUnavailableError(
                f"backend priming request returned {response.status_code}",
                status=response.status_code,
                preview=response.text,
            )
        return response

    async def post_json(
        self,
        path: str,
        credential: str,
        payload: Mapping[str, Any],
        csrf_token: Optional[str] = None,
    ) -> Any:
        """POST ``payload`` and return the decoded JSON body."""
        try:
            response = await self.http.post(
                path,
                headers=self.build_headers(credential, csrf_token),
                json=dict(payload),
            )
        except httpx.RequestError as exc:
            raise UpstreamUnavailableError(
                f"backend request to {path} failed ({format_httpx_error(exc, self.settings)})"
            ) from exc
        if not response.is_success:
            logger.warning("Backend %s returned status %s", path, response.status_code)
            raise UpstreamUnavailableError(
                f"backend {path} returned {response.status_code}",
                status=response.status_code,
                preview=response.text,
            )
        return _decode_json(response.content, path)

    @asynccontextmanager
    async def stream_post(
        self,
        path: str,
        credential: str,
        payload: Mapping[str, Any],
        csrf_token: Optional[str] = None,
    ) -> AsyncIterator[httpx.Response]:
        """POST ``payload`` and yield the response with its body still unread.

        The response is closed when the block exits, including on
        cancellation, so an abandoned stream never keeps reading.
        """
        request = self.http.build_request(
            "POST",
            path,
            headers=self.build_headers(credential, csrf_token),
            json=dict(payload),
        )
        try:
            response = await self.http.send(request, stream=True)
        except httpx.RequestError as exc:
            raise UpstreamUnavailableError(
                f"backend request to {path} failed ({format_httpx_error(exc, self.settings)})"
            ) from exc
        try:
            if not response.is_success:
                body = await response.aread()
                logger.warning("Backend %s returned status %s", path, response.status_code)
                raise UpstreamUnavailableError(
                    f"backend {path} returned {response.status_code}",
                    status=response.status_code,
                    preview=body.decode("utf-8", errors="replace"),
                )
            yield response
        finally:
            await response.aclose()
