"""Row-to-record mapping for cache ingestion.

Turns each raw result row into one or more ``(key, value)`` pairs and runs
every individual record through the optional item constructor.  Three
mapping modes are supported, checked in this order:

1. **multi-row** -- ``parse_data_multi_row(row)`` returns a list of
   independent ``(key, record)`` pairs, possibly under different keys.
2. **single-row** -- ``parse_data_row(row)`` returns one ``(key, value)``
   pair; a ``list`` value means several records under that one key.
3. **default** -- ``(row[key_field_name], row)``.

Only ``list`` values are treated as "several records".  Tuples, dicts and
strings are single records, so a mapper can still store a tuple as-is.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable, Mapping
from typing import Any

from querycache.utils.errors import RowMappingError

Row = Mapping[str, Any]
Pair = tuple[Hashable, Any]


class RowMapper:
    """Stateless mapper from raw rows to ``(key, value)`` pairs.

    Parameters
    ----------
    key_field_name:
        Field used as the key by the default mapping.
    parse_data_row:
        Optional single-row override.
    parse_data_multi_row:
        Optional multi-row override; wins over *parse_data_row*.
    item_constructor:
        Optional ``raw -> record`` transformation applied to every record
        after list flattening.
    cache_name:
        Used only to label errors.
    """

    def __init__(
        self,
        key_field_name: str = "id",
        parse_data_row: Callable[[Row], Pair] | None = None,
        parse_data_multi_row: Callable[[Row], Iterable[Pair]] | None = None,
        item_constructor: Callable[[Any], Any] | None = None,
        cache_name: str | None = None,
    ) -> None:
        self._key_field_name = key_field_name
        self._parse_data_row = parse_data_row
        self._parse_data_multi_row = parse_data_multi_row
        self._item_constructor = item_constructor
        self._cache_name = cache_name

    @property
    def mode(self) -> str:
        """Which mapping mode is active: ``multi``, ``single`` or ``default``."""
        if self._parse_data_multi_row is not None:
            return "multi"
        if self._parse_data_row is not None:
            return "single"
        return "default"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def default_pair(self, row: Row) -> Pair:
        """Key the whole row by the configured key field."""
        try:
            return row[self._key_field_name], row
        except (KeyError, IndexError, TypeError) as exc:
            raise RowMappingError(
                message=f"Row has no key field {self._key_field_name!r}",
                cache_name=self._cache_name,
            ) from exc

    def map_row(self, row: Row) -> list[Pair]:
        """Map one raw row to its ``(key, value)`` pairs, records constructed."""
        if self._parse_data_multi_row is not None:
            raw_pairs = list(self._call(self._parse_data_multi_row, row))
        elif self._parse_data_row is not None:
            raw_pairs = [self._call(self._parse_data_row, row)]
        else:
            raw_pairs = [self.default_pair(row)]

        pairs: list[Pair] = []
        for raw_pair in raw_pairs:
            key, value = self._unpack(raw_pair)
            pairs.append((key, self.construct(value)))
        return pairs

    def map_rows(self, rows: Iterable[Row]) -> list[Pair]:
        """Map every row, preserving row order and per-row pair order."""
        pairs: list[Pair] = []
        for row in rows:
            pairs.extend(self.map_row(row))
        return pairs

    def construct(self, value: Any) -> Any:
        """Apply the item constructor to *value*, element-wise for lists."""
        if self._item_constructor is None:
            return value
        if isinstance(value, list):
            return [self._construct_one(item) for item in value]
        return self._construct_one(value)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _construct_one(self, raw: Any) -> Any:
        try:
            return self._item_constructor(raw)  # type: ignore[misc]
        except Exception as exc:
            raise RowMappingError(
                message=f"Item constructor failed: {exc}",
                cache_name=self._cache_name,
            ) from exc

    def _call(self, fn: Callable[[Row], Any], row: Row) -> Any:
        try:
            return fn(row)
        except RowMappingError:
            raise
        except Exception as exc:
            raise RowMappingError(
                message=f"Row mapper {getattr(fn, '__name__', repr(fn))} failed: {exc}",
                cache_name=self._cache_name,
            ) from exc

    def _unpack(self, raw_pair: Any) -> Pair:
        try:
            key, value = raw_pair
        except (TypeError, ValueError) as exc:
            raise RowMappingError(
                message=f"Mapper must return (key, value) pairs, got {raw_pair!r}",
                cache_name=self._cache_name,
            ) from exc
        if not isinstance(key, Hashable):
            raise RowMappingError(
                message=f"Key {key!r} is not hashable",
                cache_name=self._cache_name,
            )
        return key, value


def merge_pairs(pairs: Iterable[Pair]) -> dict[Hashable, list[Any]]:
    """Build a fresh Index from mapped pairs.

    Pairs are processed in order.  A ``list`` value extends the key's record
    list, any other value is appended as a single record.  Contributions to
    the same key are always concatenated, never overwritten, and keys whose
    only contributions were empty lists are left out.
    """
    index: dict[Hashable, list[Any]] = {}
    for key, value in pairs:
        if isinstance(value, list):
            if not value:
                continue
            index.setdefault(key, []).extend(value)
        else:
            index.setdefault(key, []).append(value)
    return index
