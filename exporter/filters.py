from __future__ import annotations

from typing import Optional

from exporter.errors import TextDecodeError
from indexstore.models import Media, Record

DECODE_POLICIES = ("replace", "skip", "strict")


def is_exportable(record: Record) -> bool:
    """Only text inscriptions with a non-empty body are exported."""
    return record.media is Media.TEXT and bool(record.body)


def decode_body(body: bytes, policy: str = "replace") -> Optional[str]:
    """
    Decode a raw body as UTF-8 according to the malformed-text policy:
      - replace: invalid sequences become U+FFFD
      - skip:    return None so the record is left out
      - strict:  raise TextDecodeError
    """
    if policy == "replace":
        return body.decode("utf-8", errors="replace")
    if policy not in DECODE_POLICIES:
        raise ValueError(f"Unknown decode policy: {policy}")

    try:
        return body.decode("utf-8")
    except UnicodeDecodeError as e:
        if policy == "skip":
            return None
        raise TextDecodeError(f"Body is not valid UTF-8: {e}") from e
