"""
Message body normalization.

Turns whatever the broker delivered into the most structured representation
that decodes cleanly:

  gzip bytes -> decompressed text -> JSON value   (StructuredBody)
                                  -> plain text   (TextBody)
  bytes that fail to decode                       (OpaqueBody, original bytes)

Nothing here raises: a failed decode degrades to a less structured body.
"""

import gzip
import json
import zlib
from typing import Any

from common.logging import get_logger
from models.message import MessageBody, NormalizedMessage, OpaqueBody, RawMessage, StructuredBody, TextBody

logger = get_logger(__name__)

GZIP_MAGIC = b"\x1f\x8b"


def is_gzip(data: bytes) -> bool:
    return len(data) >= 2 and data[:2] == GZIP_MAGIC


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def parse_text(text: str) -> MessageBody:
    """JSON if it parses, the text unchanged otherwise. NaN and Infinity are not JSON."""
    try:
        return StructuredBody(value=json.loads(text, parse_constant=_reject_constant))
    except ValueError:
        return TextBody(value=text)


def _normalize_bytes(data: bytes) -> MessageBody:
    if is_gzip(data):
        try:
            text = gzip.decompress(data).decode("utf-8")
        except (OSError, EOFError, zlib.error, UnicodeDecodeError) as e:
            logger.warning(f"Gzip body could not be decompressed ({type(e).__name__}: {e}), keeping raw bytes")
            return OpaqueBody(value=data)
        return parse_text(text)

    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        return OpaqueBody(value=data)
    return parse_text(text)


def _normalize_value(value: Any) -> MessageBody:
    """AMQP value bodies (maps, lists, numbers) arrive already decoded."""
    try:
        json.dumps(value, allow_nan=False)
    except (TypeError, ValueError):
        return TextBody(value=str(value))
    return StructuredBody(value=value)


def normalize(body: Any) -> MessageBody:
    """Normalize a message body. Never raises."""
    try:
        if isinstance(body, (bytes, bytearray, memoryview)):
            return _normalize_bytes(bytes(body))
        if isinstance(body, str):
            return parse_text(body)
        return _normalize_value(body)
    except Exception as e:
        logger.warning(f"Unexpected error normalizing body ({type(e).__name__}: {e}), falling back to text")
        return TextBody(value=repr(body))


def _property_key(key: Any) -> str:
    if isinstance(key, bytes):
        return key.decode("utf-8", errors="replace")
    return str(key)


def _property_value(value: Any) -> Any:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def normalize_message(raw: RawMessage) -> NormalizedMessage:
    properties = {_property_key(k): _property_value(v) for k, v in (raw.application_properties or {}).items()}
    return NormalizedMessage(
        message_id=raw.message_id,
        body=normalize(raw.body),
        properties=properties,
        enqueued_time_utc=raw.enqueued_time_utc,
        sequence_number=raw.sequence_number,
    )
