"""Tests for message dispatch and the backend client."""

import httpx
import pytest

from caiproxy.backend import (
    BackendClient,
    MessageDispatcher,
    SendTarget,
    build_http_client,
    build_send_payload,
    parse_complete_reply,
)
from caiproxy.config_loader import BackendSettings
from caiproxy.core.exceptions import MalformedResponseError, UpstreamUnavailableError
from caiproxy.testing import SEND, SendReply, candidate_fragment

from conftest import CREDENTIAL, PARTNER_ID

CSRF = "fake-csrf-token"


def _target(**overrides) -> SendTarget:
    values = dict(
        credential=CREDENTIAL,
        partner_id=PARTNER_ID,
        tgt="internal_id:abc",
        history_id="history-1",
        csrf_token=CSRF,
    )
    values.update(overrides)
    return SendTarget(**values)


class TestBuildSendPayload:
    def test_fixed_shape(self):
        payload = build_send_payload(_target(), "hi", stream_every_n_steps=3)
        assert payload == {
            "history_external_id": "history-1",
            "character_external_id": PARTNER_ID,
            "text": "hi",
            "tgt": "internal_id:abc",
            "ranking_method": "random",
            "num_candidates": 1,
            "stream_every_n_steps": 3,
        }


class TestParseCompleteReply:
    def test_single_document(self):
        reply = parse_complete_reply(b'{"candidates":[{"text":"Hello"}]}')
        assert reply.text == "Hello"

    def test_newline_delimited_uses_last_document(self):
        body = b'{"candidates":[{"text":"He"}]}\nnoise\n{"candidates":[{"text":"Hello"}]}\n'
        assert parse_complete_reply(body).text == "Hello"

    def test_trailing_status_document_keeps_text(self):
        body = b'{"candidates":[{"text":"Hello there"}]}\n{"is_final_chunk":true}\n'
        reply = parse_complete_reply(body)
        assert reply.text == "Hello there"
        assert reply.text_or_placeholder() == "Hello there"

    def test_documents_without_text_use_placeholder(self):
        body = b'{"candidates":[]}\n{"is_final_chunk":true}\n'
        assert parse_complete_reply(body).text_or_placeholder() == "No response"

    def test_missing_candidates_falls_back_to_placeholder(self):
        reply = parse_complete_reply(b'{"replies": []}')
        assert reply.text is None
        assert reply.text_or_placeholder() == "No response"

    def test_empty_body(self):
        with pytest.raises(MalformedResponseError):
            parse_complete_reply(b"   ")

    def test_no_json_at_all(self):
        with pytest.raises(MalformedResponseError):
            parse_complete_reply(b"<html>\n</html>")


class TestMessageDispatcher:
    @pytest.mark.asyncio
    async def test_send_uses_coarse_cadence(self, fake_backend, backend_client):
        fake_backend.enqueue_texts("Hel", "Hello")
        reply = await MessageDispatcher(backend_client).send(_target(), "hi")

        assert reply.text == "Hello"
        request = fake_backend.requests_for(SEND)[0]
        assert request["json"]["stream_every_n_steps"] == 16
        assert request["json"]["text"] == "hi"
        assert request["headers"]["authorization"] == f"Token {CREDENTIAL}"
        assert request["headers"]["x-csrftoken"] == CSRF
        assert request["headers"]["cookie"] == f"csrftoken={CSRF}"

    @pytest.mark.asyncio
    async def test_stream_uses_fine_cadence(self, fake_backend, backend_client):
        fake_backend.enqueue_chunks(b'{"candidates":[{"te', b'xt":"Hi"}]}\n')
        async with MessageDispatcher(backend_client).open_stream(_target(), "hi") as response:
            reads = [chunk async for chunk in response.aiter_bytes()]

        assert reads == [b'{"candidates":[{"te', b'xt":"Hi"}]}\n']
        assert fake_backend.requests_for(SEND)[0]["json"]["stream_every_n_steps"] == 3

    @pytest.mark.asyncio
    async def test_send_failure_carries_preview(self, fake_backend, backend_client):
        fake_backend.enqueue(SendReply(fragments=["history not found"], status_code=404))
        with pytest.raises(UpstreamUnavailableError) as excinfo:
            await MessageDispatcher(backend_client).send(_target(), "hi")
        assert excinfo.value.status == 404
        assert "history not found" in excinfo.value.message

    @pytest.mark.asyncio
    async def test_stream_failure_raises_before_yielding(self, fake_backend, backend_client):
        fake_backend.fail(SEND, 502, "bad gateway")
        with pytest.raises(UpstreamUnavailableError, match="bad gateway"):
            async with MessageDispatcher(backend_client).open_stream(_target(), "hi"):
                pytest.fail("stream should not open")

    @pytest.mark.asyncio
    async def test_connection_error_is_upstream_unavailable(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        settings = BackendSettings(base_url="http://backend.local")
        http = httpx.AsyncClient(base_url=settings.base_url, transport=httpx.MockTransport(refuse))
        client = BackendClient(http, settings)
        try:
            with pytest.raises(UpstreamUnavailableError, match="ConnectError"):
                await MessageDispatcher(client).send(_target(), "hi")
            with pytest.raises(UpstreamUnavailableError, match="ConnectError"):
                await client.post_json("/chat/history/create/", CREDENTIAL, {})
        finally:
            await http.aclose()

    @pytest.mark.asyncio
    async def test_non_json_success_body_is_malformed(self):
        def html(request):
            return httpx.Response(200, text="<html>login</html>")

        settings = BackendSettings(base_url="http://backend.local")
        http = httpx.AsyncClient(base_url=settings.base_url, transport=httpx.MockTransport(html))
        try:
            with pytest.raises(MalformedResponseError):
                await BackendClient(http, settings).post_json("/chat/character/info/", CREDENTIAL, {})
        finally:
            await http.aclose()


def test_build_http_client_applies_timeouts():
    settings = BackendSettings(base_url="http://backend.local", connect_timeout=2.0, read_timeout=30.0)
    client = build_http_client(settings)
    assert client.timeout.connect == 2.0
    assert client.timeout.read == 30.0
    assert str(client.base_url) == "http://backend.local"


def test_headers_without_csrf():
    settings = BackendSettings(base_url="http://backend.local", auth_scheme="Token")
    client = BackendClient(httpx.AsyncClient(), settings)
    headers = client.build_headers("tok")
    assert headers["Authorization"] == "Token tok"
    assert "X-CSRFToken" not in headers
    assert "Cookie" not in headers


def test_candidate_fragment_shape():
    assert candidate_fragment("x") == {"candidates": [{"text": "x"}]}
