"""Stream decoding for backend responses.

Turns raw response bytes into parsed NDJSON records, tolerating arbitrary
chunk boundaries and isolated malformed lines.
"""

from prince_chat.streaming.ndjson import (
    DecodedRecord,
    NDJSONDecoder,
    SkippedLine,
    decode,
    decode_lines,
)

__all__ = ["DecodedRecord", "NDJSONDecoder", "SkippedLine", "decode", "decode_lines"]
