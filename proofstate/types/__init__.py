"""
Value types shared by every layer of the engine.
"""

from .node_id import (
    NODE_ID_PATTERN,
    NodeID,
    NodeIDLike,
    as_node_id,
    compare_node_ids,
    sort_node_ids,
)
from .timestamps import (
    ensure_utc,
    from_iso,
    to_iso,
    utc_now,
)

__all__ = [
    "NODE_ID_PATTERN",
    "NodeID",
    "NodeIDLike",
    "as_node_id",
    "compare_node_ids",
    "sort_node_ids",
    "ensure_utc",
    "from_iso",
    "to_iso",
    "utc_now",
]
