"""
Hierarchical node identifiers.

A NodeID is a path of positive integers rendered as dot-joined decimal text:
"1" is the root, "1.2" its second child, "1.2.3" a grandchild.

Ordering is segment-wise numeric and depth-aware ("1.2" < "1.10",
"1" < "1.1"). Every sort in the engine goes through this ordering; raw string
comparison of IDs is never used.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple, Union

from ..errors import ParseError

NODE_ID_PATTERN = re.compile(r"[1-9][0-9]*(\.[1-9][0-9]*)*")


@dataclass(frozen=True, order=True)
class NodeID:
    """
    Immutable hierarchical node identifier.

    Attributes:
        segments: Positive integer path segments (at least one)
    """
    segments: Tuple[int, ...]

    def __post_init__(self):
        if not isinstance(self.segments, tuple):
            object.__setattr__(self, "segments", tuple(self.segments))
        if not self.segments:
            raise ParseError(self.segments, "node id needs at least one segment")
        for seg in self.segments:
            if isinstance(seg, bool) or not isinstance(seg, int) or seg < 1:
                raise ParseError(self.segments, f"segment {seg!r} is not a positive integer")

    @classmethod
    def parse(cls, text: str) -> "NodeID":
        """
        Parse the dot-separated text form.

        Args:
            text: e.g. "1", "1.2.3"

        Returns:
            Parsed NodeID

        Raises:
            ParseError: empty, malformed, non-numeric or non-positive segment
        """
        if not isinstance(text, str):
            raise ParseError(text, "node id must be a string")
        if not text:
            raise ParseError(text, "empty node id")
        if not NODE_ID_PATTERN.fullmatch(text):
            for part in text.split("."):
                if part == "":
                    raise ParseError(text, "empty segment")
                if not (part.isascii() and part.isdigit()):
                    raise ParseError(text, f"non-numeric segment {part!r}")
                if int(part) < 1:
                    raise ParseError(text, f"segment {part!r} must be positive")
            raise ParseError(text, "segments must not have leading zeros")
        return cls(tuple(int(part) for part in text.split(".")))

    @classmethod
    def root(cls) -> "NodeID":
        return cls((1,))

    def to_string(self) -> str:
        return ".".join(str(seg) for seg in self.segments)

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"NodeID('{self.to_string()}')"

    def parent(self) -> Optional["NodeID"]:
        """Return the parent ID, or None for a root."""
        if len(self.segments) == 1:
            return None
        return NodeID(self.segments[:-1])

    def child(self, n: int) -> "NodeID":
        """Return the n-th child (n >= 1)."""
        if isinstance(n, bool) or not isinstance(n, int) or n < 1:
            raise ValueError(f"child number must be a positive integer, got {n!r}")
        return NodeID(self.segments + (n,))

    def depth(self) -> int:
        return len(self.segments)

    def is_root(self) -> bool:
        return len(self.segments) == 1

    def is_ancestor_of(self, other: "NodeID") -> bool:
        """True if self is a strict prefix of other."""
        return (
            len(self.segments) < len(other.segments)
            and other.segments[: len(self.segments)] == self.segments
        )

    def is_child_of(self, other: "NodeID") -> bool:
        return self.parent() == other

    def common_ancestor(self, other: "NodeID") -> Optional["NodeID"]:
        """
        Lowest common ancestor of two IDs.

        Returns one of the inputs if it is an ancestor of the other, and None
        when the IDs live under different roots.
        """
        shared: List[int] = []
        for a, b in zip(self.segments, other.segments):
            if a != b:
                break
            shared.append(a)
        if not shared:
            return None
        return NodeID(tuple(shared))

    def ancestors(self) -> List["NodeID"]:
        """Ancestors from the immediate parent up to the root."""
        result = []
        current = self.parent()
        while current is not None:
            result.append(current)
            current = current.parent()
        return result


NodeIDLike = Union[NodeID, str]


def as_node_id(value: NodeIDLike) -> NodeID:
    """Accept a NodeID or its text form."""
    if isinstance(value, NodeID):
        return value
    return NodeID.parse(value)


def compare_node_ids(a: NodeIDLike, b: NodeIDLike) -> int:
    """Three-way comparison: negative, zero or positive."""
    left, right = as_node_id(a), as_node_id(b)
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def sort_node_ids(ids: Iterable[NodeIDLike]) -> List[NodeID]:
    """Sort IDs in canonical numeric order."""
    return sorted(as_node_id(i) for i in ids)
