"""SSE frame reading and decoding for chat completion streams.

Only newline-delimited ``data: `` frames are understood:

    data: {"choices":[{"delta":{"content":"Hello"},"index":0}]}

    data: [DONE]

Anything else (blank lines, comments, ``event:`` lines) is ignored.
"""

import codecs
import json
import logging
from typing import Any, AsyncIterable, AsyncIterator, Optional

logger = logging.getLogger("gatewaylm")

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


class SSELineDecoder:
    """Splits raw body bytes into ``data:`` payload strings.

    Lines and multi-byte characters that straddle a chunk boundary are held
    back until the rest arrives.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[str]:
        if not chunk:
            return []
        text = self._decoder.decode(chunk)
        self._buffer += text.replace("\r\n", "\n").replace("\r", "\n")

        payloads: list[str] = []
        while True:
            newline = self._buffer.find("\n")
            if newline == -1:
                break
            line = self._buffer[:newline]
            self._buffer = self._buffer[newline + 1:]
            payload = self._parse_line(line)
            if payload is not None:
                payloads.append(payload)
        return payloads

    def flush(self) -> list[str]:
        """Return the payload of an unterminated trailing line, if any."""
        self._buffer += self._decoder.decode(b"", final=True)
        leftover = self._buffer
        self._buffer = ""
        payload = self._parse_line(leftover)
        return [payload] if payload is not None else []

    @staticmethod
    def _parse_line(line: str) -> Optional[str]:
        stripped = line.strip()
        if not stripped.startswith(DATA_PREFIX):
            return None
        payload = stripped[len(DATA_PREFIX):]
        if payload == DONE_SENTINEL:
            return None
        return payload


def decode_frame(payload: str) -> Optional[dict[str, Any]]:
    """Parse one SSE payload as a JSON object; malformed payloads yield None."""
    try:
        parsed = json.loads(payload)
    except json.JSONDecodeError:
        logger.debug("Dropping malformed SSE frame: %s", payload[:100])
        return None
    if not isinstance(parsed, dict):
        logger.debug("Dropping non-object SSE frame: %s", payload[:100])
        return None
    return parsed


async def aiter_sse_frames(
    byte_stream: AsyncIterable[bytes],
) -> AsyncIterator[dict[str, Any]]:
    """Yield decoded JSON frames from an SSE byte stream, in arrival order."""
    decoder = SSELineDecoder()
    async for chunk in byte_stream:
        for payload in decoder.feed(chunk):
            frame = decode_frame(payload)
            if frame is not None:
                yield frame
    for payload in decoder.flush():
        frame = decode_frame(payload)
        if frame is not None:
            yield frame
