"""JSON encoding and decoding of cache snapshots.

A snapshot is the Index serialized as an ordered JSON array of
``[key, [record, ...]]`` pairs.  An array of pairs (rather than a JSON
object) keeps non-string keys such as integers intact across a round trip.

Records are converted to JSON primitives on the way out:

    pydantic model   →  model_dump(mode="json")
    dataclass        →  dataclasses.asdict
    datetime / date  →  ISO-8601 string
    Decimal          →  string (no float rounding)
    set / frozenset  →  list
    bytes            →  UTF-8 string (replacement on invalid bytes)
    other objects    →  their public ``__dict__`` attributes

On the way in, keys that come back as JSON arrays are turned into tuples so
they stay hashable, and each record is passed through the cache's item
constructor when one is configured.
"""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Callable, Hashable, Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel

from querycache.utils.errors import SnapshotReadError, SnapshotWriteError


def encode_index(entries: Mapping[Hashable, list[Any]], cache_name: str | None = None) -> bytes:
    """Serialize *entries* to snapshot bytes.

    Raises:
        SnapshotWriteError: If a key or record cannot be represented in JSON.
    """
    payload = [[_encode_key(key), values] for key, values in entries.items()]
    try:
        return json.dumps(payload, default=_json_default, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise SnapshotWriteError(
            message=f"Snapshot serialization failed: {exc}",
            cache_name=cache_name,
        ) from exc


def decode_index(
    data: bytes,
    item_constructor: Callable[[Any], Any] | None = None,
    cache_name: str | None = None,
) -> dict[Hashable, list[Any]]:
    """Rebuild an Index from snapshot bytes.

    Keys with an empty record list are dropped so the result never maps a
    key to an empty list.  Duplicate keys are concatenated in file order.

    Raises:
        SnapshotReadError: If the bytes are not valid JSON, the structure is
            not an array of ``[key, [records]]`` pairs, or the item
            constructor rejects a record.
    """
    try:
        payload = json.loads(data)
    except (UnicodeDecodeError, ValueError, RecursionError) as exc:
        raise SnapshotReadError(
            message=f"Snapshot is not valid JSON: {exc}",
            cache_name=cache_name,
        ) from exc

    if not isinstance(payload, list):
        raise SnapshotReadError(
            message=f"Snapshot must be a JSON array, got {type(payload).__name__}",
            cache_name=cache_name,
        )

    index: dict[Hashable, list[Any]] = {}
    for position, pair in enumerate(payload):
        if not isinstance(pair, list) or len(pair) != 2 or not isinstance(pair[1], list):
            raise SnapshotReadError(
                message=f"Snapshot entry {position} is not a [key, [records]] pair",
                cache_name=cache_name,
            )
        try:
            key = _decode_key(pair[0], position, cache_name)
        except RecursionError as exc:
            raise SnapshotReadError(
                message=f"Snapshot entry {position} has a key nested too deeply",
                cache_name=cache_name,
            ) from exc
        values = pair[1]
        if not values:
            continue
        if item_constructor is not None:
            try:
                values = [item_constructor(value) for value in values]
            except Exception as exc:
                raise SnapshotReadError(
                    message=f"Item constructor rejected snapshot entry {position}: {exc}",
                    cache_name=cache_name,
                ) from exc
        index.setdefault(key, []).extend(values)
    return index


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _encode_key(key: Hashable) -> Any:
    if isinstance(key, tuple):
        return [_encode_key(part) for part in key]
    return key


def _decode_key(raw: Any, position: int, cache_name: str | None) -> Hashable:
    if isinstance(raw, list):
        return tuple(_decode_key(part, position, cache_name) for part in raw)
    if isinstance(raw, dict):
        raise SnapshotReadError(
            message=f"Snapshot entry {position} has an object key",
            cache_name=cache_name,
        )
    return raw


def _json_default(value: Any) -> Any:
    """Fallback for ``json.dumps`` covering common record types."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return list(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, Mapping):
        return dict(value)
    attributes = getattr(value, "__dict__", None)
    if attributes is not None:
        return {k: v for k, v in attributes.items() if not k.startswith("_")}
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
