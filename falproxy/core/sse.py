"""SSE (Server-Sent Events) encoding and decoding utilities."""

import codecs
import json
import logging
from typing import Any

logger = logging.getLogger("falproxy")

SSE_DONE = b"data: [DONE]\n\n"


def format_sse_data(payload: Any) -> bytes:
    """Encode a payload as a single ``data:`` SSE frame."""
    json_str = json.dumps(payload, ensure_ascii=False)
    return f"data: {json_str}\n\n".encode("utf-8")


class SSEJSONDecoder:
    """Incrementally decode JSON payloads from ``data:`` lines of an SSE stream.

    Upstream bytes can split lines anywhere, so incomplete trailing lines are
    buffered until the next feed, and so are the bytes of a UTF-8 character
    split between two chunks. Multi-line ``data:`` fields of one event are
    joined before parsing.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._data_lines: list[str] = []
        self._text_decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, chunk: bytes) -> list[Any]:
        self._buffer += self._text_decoder.decode(chunk)
        payloads: list[Any] = []
        while "\n" in self._buffer:
            line, self._buffer = self._buffer.split("\n", 1)
            payload = self._handle_line(line.rstrip("\r"))
            if payload is not None:
                payloads.append(payload)
        return payloads

    def flush(self) -> list[Any]:
        """Decode whatever is left once the upstream stream has ended."""
        self._buffer += self._text_decoder.decode(b"", final=True)
        payloads: list[Any] = []
        if self._buffer:
            payload = self._handle_line(self._buffer.rstrip("\r"))
            self._buffer = ""
            if payload is not None:
                payloads.append(payload)
        payload = self._dispatch()
        if payload is not None:
            payloads.append(payload)
        return payloads

    def _handle_line(self, line: str) -> Any:
        if not line:
            return self._dispatch()
        if line.startswith(":"):
            return None
        if line.startswith("data:"):
            self._data_lines.append(line[5:].lstrip(" "))
        return None

    def _dispatch(self) -> Any:
        if not self._data_lines:
            return None
        data = "\n".join(self._data_lines).strip()
        self._data_lines = []
        if not data or data == "[DONE]":
            return None
        try:
            return json.loads(data)
        except json.JSONDecodeError:
            logger.debug(f"SSEJSONDecoder: Failed to parse: {data[:100]}")
            return None
