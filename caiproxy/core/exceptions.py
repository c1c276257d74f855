"""Core exceptions for the proxy."""

from typing import Optional

# Upstream error bodies are often full HTML pages; keep only a short preview.
ERROR_PREVIEW_LIMIT = 200


def truncate_preview(text: Optional[str], limit: int = ERROR_PREVIEW_LIMIT) -> str:
    """Return at most ``limit`` characters of ``text`` for diagnostics."""
    if not text:
        return ""
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


class ProxyError(Exception):
    """Base exception for proxy errors."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequestError(ProxyError):
    """Raised when an incoming request is invalid."""

    status_code = 400

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


class UnauthorizedError(ProxyError):
    """Raised when the bearer credential is missing or malformed."""

    status_code = 401


class MethodNotAllowedError(ProxyError):
    """Raised for any method other than POST on the completions endpoint."""

    status_code = 405


class UpstreamUnavailableError(ProxyError):
    """The backend answered with a non-success status or could not be reached."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        preview: str = "",
    ) -> None:
        self.status = status
        self.preview = truncate_preview(preview)
        if self.preview:
            message = f"{message}: {self.preview}"
        super().__init__(message)


class MissingTokenError(UpstreamUnavailableError):
    """The priming response carried no anti-forgery cookie."""


class MalformedResponseError(ProxyError):
    """The backend answered successfully but without the expected fields."""


class TransportInterruptedError(ProxyError):
    """The backend connection was lost while a reply was streaming."""
