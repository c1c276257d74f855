"""Shapes of the session backend's replies."""

from dataclasses import dataclass
from typing import Any, Optional

# Placeholder used when a complete reply carries no candidate text.
NO_RESPONSE_TEXT = "No response"


@dataclass(frozen=True)
class BackendReply:
    """Best-effort text extracted from one backend JSON document."""

    text: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "BackendReply":
        """Read ``candidates[0].text``; any other shape yields ``text=None``."""
        if not isinstance(payload, dict):
            return cls()
        candidates = payload.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            return cls()
        first = candidates[0]
        if not isinstance(first, dict):
            return cls()
        text = first.get("text")
        if not isinstance(text, str):
            return cls()
        return cls(text=text)

    def text_or_placeholder(self) -> str:
        return self.text or NO_RESPONSE_TEXT
