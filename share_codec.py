"""
Share-link codec: JSON -> UTF-8 -> zlib (level 9) -> standard Base64.

The output alphabet is [A-Za-z0-9+/=]. It never contains '&', and '=' only
appears as trailing padding, which is what lets share_fragment split the URL
fragment on '&' and on the first '=' of each pair without any escaping.
The zlib container is the same one pako.deflate() emits, so links made by the
JavaScript build of the page decode here and vice versa.
"""

import base64
import binascii
import json
import re
import zlib
from typing import Any

from share_errors import DecodeError, ParseError, PayloadTooLargeError

COMPRESSION_LEVEL = 9
# Upper bound on the inflated JSON; a hostile link must not balloon in memory.
MAX_INFLATED_BYTES = 16 * 1024 * 1024

EncodedBlob = str

# A code point in this range left in dumped JSON text is an unpaired surrogate
_LONE_SURROGATE = re.compile("[\ud800-\udfff]")


def _escape_surrogate(match) -> str:
    return "\\u%04x" % ord(match.group())


def to_json(payload: Any) -> str:
    """
    Canonical JSON text: sorted keys, no spaces, non-ASCII kept as-is.
    Unpaired surrogates are escaped the way JSON.stringify does, so the text
    always encodes to UTF-8.
    """
    text = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return _LONE_SURROGATE.sub(_escape_surrogate, text)


def compress(payload: Any) -> EncodedBlob:
    """Raises PayloadTooLargeError when decompress() would refuse the result."""
    data = to_json(payload).encode("utf-8")
    if len(data) > MAX_INFLATED_BYTES:
        raise PayloadTooLargeError(
            f"Payload is {len(data)} bytes; share links carry at most {MAX_INFLATED_BYTES}"
        )
    packed = zlib.compress(data, COMPRESSION_LEVEL)
    return base64.b64encode(packed).decode("ascii")


def _restore_padding(token: str) -> str:
    # Chat apps and address bars like to eat trailing '='.
    missing = -len(token) % 4
    return token + "=" * missing if missing else token


def decompress(blob: EncodedBlob) -> Any:
    """
    Exact inverse of compress().

    Raises DecodeError with a distinct `stage` for each failure point;
    JSON problems surface as ParseError (a DecodeError subclass).
    """
    token = _restore_padding((blob or "").strip())

    # 1. Safe-text token -> bytes
    try:
        packed = base64.b64decode(token, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid Base64 token: {e}", stage="token") from e

    # 2. Inflate (bounded)
    inflater = zlib.decompressobj()
    try:
        data = inflater.decompress(packed, MAX_INFLATED_BYTES + 1)
    except zlib.error as e:
        raise DecodeError(f"Corrupt compressed stream: {e}", stage="inflate") from e
    if len(data) > MAX_INFLATED_BYTES:
        raise DecodeError(f"Inflated payload exceeds {MAX_INFLATED_BYTES} bytes", stage="inflate")
    if not inflater.eof:
        raise DecodeError("Compressed stream is truncated", stage="inflate")

    # 3. Bytes -> text -> JSON
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Payload is not valid UTF-8: {e}", stage="utf8") from e
    try:
        return json.loads(text)
    except (ValueError, RecursionError) as e:
        raise ParseError(f"Payload is not valid JSON: {e}") from e
