"""Incremental NDJSON decoding for streamed HTTP bodies.

Chunks arrive with arbitrary boundaries: a JSON line, or a multi-byte
character, can be split across any number of chunks. The decoder keeps a
text buffer and a stateful UTF-8 decoder so that the records produced do not
depend on how the stream was chunked. Invalid UTF-8 is replaced with U+FFFD;
since a newline byte never occurs inside a multi-byte sequence, a bad byte
only affects the line it sits on.
"""

import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class DecodedRecord(BaseModel):
    """A line that parsed as JSON."""

    record: Any


class SkippedLine(BaseModel):
    """A line that was not valid JSON and was skipped.

    Attributes:
        line: The offending line, without its newline.
        reason: Parser error message.
    """

    line: str
    reason: str


LineOutcome = DecodedRecord | SkippedLine


class NDJSONDecoder:
    """Stateful NDJSON decoder fed one chunk at a time.

    Single use: one instance per stream.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""
        self._closed = False

    def feed(self, chunk: bytes) -> list[LineOutcome]:
        """Decode a chunk and return outcomes for every line it completed.

        Args:
            chunk: Raw bytes as received from the transport.

        Returns:
            One outcome per complete non-blank line, in stream order.
        """
        if self._closed:
            raise RuntimeError("Decoder already closed")

        self._buffer += self._decoder.decode(chunk)

        *lines, self._buffer = self._buffer.split("\n")
        return [outcome for line in lines if (outcome := _parse_line(line)) is not None]

    def close(self) -> None:
        """End the stream, discarding any unterminated trailing line."""
        if self._closed:
            return
        self._closed = True
        remainder = self._buffer + self._decoder.decode(b"", final=True)
        if remainder.strip():
            logger.debug(f"Discarding unterminated NDJSON tail ({len(remainder)} chars)")
        self._buffer = ""


def _parse_line(line: str) -> LineOutcome | None:
    stripped = line.strip()
    if not stripped:
        return None
    try:
        return DecodedRecord(record=json.loads(stripped))
    except json.JSONDecodeError as e:
        logger.warning(f"Skipping malformed NDJSON line: {e}")
        return SkippedLine(line=line, reason=str(e))


async def decode_lines(byte_stream: AsyncIterable[bytes]) -> AsyncIterator[LineOutcome]:
    """Decode a byte stream into per-line outcomes.

    Args:
        byte_stream: Async iterable of raw chunks, consumed once.

    Yields:
        DecodedRecord or SkippedLine for each complete non-blank line.
    """
    decoder = NDJSONDecoder()
    try:
        async for chunk in byte_stream:
            for outcome in decoder.feed(chunk):
                yield outcome
    finally:
        decoder.close()


async def decode(byte_stream: AsyncIterable[bytes]) -> AsyncIterator[Any]:
    """Decode a byte stream into parsed JSON records, skipping bad lines.

    Args:
        byte_stream: Async iterable of raw chunks, consumed once.

    Yields:
        Parsed JSON values, one per valid line.
    """
    async for outcome in decode_lines(byte_stream):
        if isinstance(outcome, DecodedRecord):
            yield outcome.record
