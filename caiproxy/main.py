"""Main FastAPI application for caiproxy."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.routes import chat_completions, http_error_handler, proxy_error_handler, usage_router
from .backend.client import build_http_client
from .config_loader import ProxySettings, load_settings
from .core.exceptions import ProxyError
from .core.registry import set_gateway
from .gateway import ChatGateway
from .logging import setup_logging
from .store import KeyValueStore, create_store

logger = logging.getLogger("caiproxy")

COMPLETION_PATHS = ("/v1/chat/completions", "/api/v1/chat/completions")


def create_app(
    settings: Optional[ProxySettings] = None,
    *,
    store: Optional[KeyValueStore] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the proxy application.

    Args:
        settings: Typed settings; loaded from the config file when omitted.
        store: Session store override (tests pass a MemoryStore).
        transport: httpx transport override for the backend client.
    """
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_store = store is None
        session_store = store or create_store(settings.store)
        http = build_http_client(settings.backend, transport=transport)
        gateway = ChatGateway(settings, session_store, http)
        app.state.gateway = gateway
        set_gateway(gateway)
        logger.info(
            "caiproxy ready on %s:%s -> %s (store=%s, csrf=%s)",
            settings.host,
            settings.port,
            settings.backend.base_url,
            session_store.backend_name,
            settings.backend.csrf_enabled,
        )
        try:
            yield
        finally:
            await http.aclose()
            # An injected store belongs to the caller
            if owns_store:
                await gateway.aclose()
            set_gateway(None)
            logger.info("caiproxy shut down")

    app = FastAPI(title="caiproxy", lifespan=lifespan)
    app.add_exception_handler(ProxyError, proxy_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    for path in COMPLETION_PATHS:
        app.post(path)(chat_completions)
    app.include_router(usage_router)
    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    settings = load_settings()
    setup_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


__all__ = ["create_app", "run"]
