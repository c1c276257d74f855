"""Per-request pipeline: handshake, dispatch, translate."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack
from typing import AsyncIterator, Optional

import httpx

from .backend.client import BackendClient
from .backend.dispatcher import MessageDispatcher, SendTarget
from .completions.stream_adapter import DisconnectChecker, StreamAdapter, translate_stream
from .completions.translator import build_chat_completion
from .config_loader import ProxySettings
from .logging import credential_tag
from .session import CacheKeys, CsrfResolver, HistoryManager, IdentityResolver
from .store.base import KeyValueStore
from .types.chat import ChatCompletion

logger = logging.getLogger("caiproxy")


class ReplyStream:
    """SSE frames for one streamed reply.

    Iterating relays the backend body; the backend response is released
    when iteration ends or when ``aclose`` is called, whichever comes first.
    ``aclose`` also covers a response that was never iterated.
    """

    def __init__(
        self,
        response: httpx.Response,
        adapter: StreamAdapter,
        stack: AsyncExitStack,
        disconnect_checker: Optional[DisconnectChecker] = None,
    ) -> None:
        self.response = response
        self.adapter = adapter
        self._stack = stack
        self._disconnect_checker = disconnect_checker

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._relay()

    async def _relay(self) -> AsyncIterator[bytes]:
        try:
            async for frame in translate_stream(
                self.response.aiter_bytes(),
                self.adapter,
                disconnect_checker=self._disconnect_checker,
            ):
                yield frame
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        await self._stack.aclose()


class ChatGateway:
    """Run the handshake and send for one caller request.

    The steps are strictly sequential: anti-forgery token, routing
    identifier, conversation handle, then the send itself. Each lookup goes
    through the injected store first; nothing here is shared between
    requests except that store and the HTTP client.
    """

    def __init__(
        self,
        settings: ProxySettings,
        store: KeyValueStore,
        http: httpx.AsyncClient,
    ) -> None:
        self.settings = settings
        self.store = store
        self.client = BackendClient(http, settings.backend)
        keys = CacheKeys(settings.cache.key_prefix)
        self.keys = keys
        self.csrf: Optional[CsrfResolver] = None
        if settings.backend.csrf_enabled:
            self.csrf = CsrfResolver(store, self.client, keys, settings.cache.csrf_ttl)
        self.identity = IdentityResolver(store, self.client, keys, settings.cache.tgt_ttl)
        self.history = HistoryManager(store, self.client, keys, settings.cache.history_ttl)
        self.dispatcher = MessageDispatcher(self.client)

    async def prepare(self, credential: str, partner_id: str) -> SendTarget:
        csrf_token = await self.csrf.resolve(credential) if self.csrf else None
        tgt = await self.identity.resolve(credential, partner_id, csrf_token)
        history_id = await self.history.resolve(credential, partner_id, csrf_token)
        return SendTarget(
            credential=credential,
            partner_id=partner_id,
            tgt=tgt,
            history_id=history_id,
            csrf_token=csrf_token,
        )

    async def complete(self, credential: str, partner_id: str, message: str) -> ChatCompletion:
        """Send ``message`` and return the whole reply as one completion."""
        target = await self.prepare(credential, partner_id)
        reply = await self.dispatcher.send(target, message)
        await self.history.touch(credential, partner_id, target.history_id)
        logger.info(
            "Completed reply from %s for credential %s (%d chars)",
            partner_id,
            credential_tag(credential),
            len(reply.text or ""),
        )
        return build_chat_completion(reply, partner_id)

    async def stream(
        self,
        credential: str,
        partner_id: str,
        message: str,
        *,
        disconnect_checker: Optional[DisconnectChecker] = None,
    ) -> ReplyStream:
        """Send ``message`` and return its SSE frames.

        Everything that can fail with a proper status code (the handshake and
        the send's own status) happens before this returns; the iterator
        itself only relays the reply.
        """
        target = await self.prepare(credential, partner_id)
        stack = AsyncExitStack()
        try:
            response = await stack.enter_async_context(self.dispatcher.open_stream(target, message))
            await self.history.touch(credential, partner_id, target.history_id)
        except BaseException:
            await stack.aclose()
            raise

        adapter = StreamAdapter(partner_id)
        logger.info(
            "Streaming reply from %s for credential %s",
            partner_id,
            credential_tag(credential),
        )
        return ReplyStream(response, adapter, stack, disconnect_checker)

    async def aclose(self) -> None:
        await self.store.close()
