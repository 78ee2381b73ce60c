"""Opaque keyset cursors over the (created_at, id) ordering key."""

from __future__ import annotations

import base64
import binascii
import json
from datetime import datetime
from typing import NamedTuple

from app.core.errors import MalformedCursor


class CursorKey(NamedTuple):
    timestamp: datetime
    id: str


def encode_cursor(timestamp: datetime, row_id: object) -> str:
    """Encode the ordering key of the last row on a page.

    The timestamp keeps full microsecond precision and its tzinfo, so rows
    created within the same second still compare correctly after decoding.
    """
    payload = json.dumps(
        {"ts": timestamp.isoformat(timespec="microseconds"), "id": str(row_id)},
        separators=(",", ":"),
        sort_keys=True,
    )
    return base64.urlsafe_b64encode(payload.encode()).decode().rstrip("=")


def decode_cursor(cursor: str) -> CursorKey:
    """Decode a cursor produced by ``encode_cursor``. Raises MalformedCursor."""
    try:
        padded = cursor + "=" * (-len(cursor) % 4)
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        data = json.loads(raw)
        timestamp = datetime.fromisoformat(data["ts"])
        row_id = data["id"]
    except (binascii.Error, UnicodeError, ValueError, KeyError, TypeError) as exc:
        raise MalformedCursor(f"Undecodable cursor: {cursor!r}") from exc

    if not isinstance(row_id, str) or not row_id:
        raise MalformedCursor(f"Cursor has no row id: {cursor!r}")
    return CursorKey(timestamp=timestamp, id=row_id)
