"""SSE framing and newline-delimited JSON buffering."""

import codecs
import json
from typing import Any, List, Mapping

SSE_DONE = b"data: [DONE]\n\n"


def encode_sse_frame(payload: Mapping[str, Any]) -> bytes:
    """Serialize a payload as a single ``data: <json>\\n\\n`` frame."""
    data = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    return f"data: {data}\n\n".encode("utf-8")


class NDJSONLineBuffer:
    """Reassemble newline-delimited fragments from arbitrary network reads.

    Reads rarely line up with fragment boundaries, so the trailing piece of
    every read is held back until the newline that completes it arrives.
    Bytes go through an incremental UTF-8 decoder so multi-byte characters
    split across reads survive intact.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    @property
    def pending(self) -> str:
        return self._buffer

    def feed(self, chunk: bytes) -> List[str]:
        """Add a network read and return every fragment it completed."""
        self._buffer += self._decoder.decode(chunk)
        if "\n" not in self._buffer:
            return []
        *complete, self._buffer = self._buffer.split("\n")
        return [line.strip() for line in complete if line.strip()]

    def flush(self) -> List[str]:
        """Return whatever is left once the stream has ended."""
        self._buffer += self._decoder.decode(b"", final=True)
        remainder = self._buffer.strip()
        self._buffer = ""
        return [remainder] if remainder else []
