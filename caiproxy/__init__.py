"""caiproxy - chat-completions proxy for session-based character chat backends.

Callers speak the OpenAI chat-completions protocol; the proxy keeps one
backend conversation per (credential, character) pair, handles the
anti-forgery and routing handshake, and relays replies either whole or as
Server-Sent Events.

Example:
    >>> from caiproxy import create_app
    >>> import uvicorn
    >>> uvicorn.run(create_app(), host="127.0.0.1", port=8000)
"""

from .config_loader import ProxySettings, load_config, load_settings
from .gateway import ChatGateway
from .logging import logger, setup_logging
from .main import create_app, run

__all__ = [
    "ChatGateway",
    "ProxySettings",
    "create_app",
    "load_config",
    "load_settings",
    "logger",
    "run",
    "setup_logging",
]
