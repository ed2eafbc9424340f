"""Cache services: row mapping, snapshot encoding and the cache core."""

from querycache.services.query_cache import QueryCache
from querycache.services.row_mapper import RowMapper, merge_pairs
from querycache.services.snapshot_codec import decode_index, encode_index

__all__ = ["QueryCache", "RowMapper", "decode_index", "encode_index", "merge_pairs"]
