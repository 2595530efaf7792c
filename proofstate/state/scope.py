"""
Assumption scopes.

A local_assume node opens a scope covering its descendants. The scope stays
active until a local_discharge node below it closes it. Nodes may cite an
active scope in their scope list as "assume:<node id>".

The tracker holds no lock of its own; ProofState guards it with the store
lock.
"""

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..errors import ScopeViolationError
from ..types.node_id import NodeID, NodeIDLike, as_node_id
from ..types.timestamps import ensure_utc, to_iso, utc_now


@dataclass
class ScopeEntry:
    """
    One local assumption and its lifetime.

    Attributes:
        node_id: The local_assume node that opened the scope
        statement: The assumed statement
        introduced: When the scope opened
        discharged: When it closed, None while active
        discharged_by: The local_discharge node that closed it
    """
    node_id: NodeID
    statement: str
    introduced: datetime
    discharged: Optional[datetime] = None
    discharged_by: Optional[NodeID] = None

    @property
    def is_active(self) -> bool:
        return self.discharged is None

    def contains(self, node_id: NodeIDLike) -> bool:
        """True for strict descendants of the opening node."""
        return self.node_id.is_ancestor_of(as_node_id(node_id))

    def snapshot(self) -> "ScopeEntry":
        return dataclasses.replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_id": str(self.node_id),
            "statement": self.statement,
            "introduced": to_iso(self.introduced),
            "discharged": to_iso(self.discharged),
            "discharged_by": str(self.discharged_by) if self.discharged_by else None,
            "active": self.is_active,
        }


@dataclass
class ScopeInfo:
    """Scope context of one node: the active scopes containing it, outermost first."""
    containing: List[ScopeEntry]

    @property
    def depth(self) -> int:
        return len(self.containing)

    @property
    def in_any_scope(self) -> bool:
        return bool(self.containing)


class ScopeTracker:
    """Scopes of one proof, keyed by the opening node."""

    def __init__(self):
        self._scopes: Dict[NodeID, ScopeEntry] = {}

    def open_scope(
        self,
        node_id: NodeIDLike,
        statement: str,
        now: Optional[datetime] = None,
    ) -> ScopeEntry:
        """
        Raises:
            ScopeViolationError: a scope was already opened at node_id
        """
        key = as_node_id(node_id)
        if key in self._scopes:
            raise ScopeViolationError(key, "scope already opened here", key)
        entry = ScopeEntry(
            node_id=key,
            statement=statement,
            introduced=ensure_utc(now) if now is not None else utc_now(),
        )
        self._scopes[key] = entry
        return entry.snapshot()

    def close_scope(
        self,
        node_id: NodeIDLike,
        discharged_by: Optional[NodeIDLike] = None,
        now: Optional[datetime] = None,
    ) -> ScopeEntry:
        """
        Raises:
            ScopeViolationError: no scope at node_id, or it is already closed
        """
        key = as_node_id(node_id)
        closer = as_node_id(discharged_by) if discharged_by is not None else key
        entry = self._scopes.get(key)
        if entry is None:
            raise ScopeViolationError(closer, f"no scope opened at {key}", key)
        if not entry.is_active:
            raise ScopeViolationError(
                closer, f"scope {key} already discharged by {entry.discharged_by}", key
            )
        entry.discharged = ensure_utc(now) if now is not None else utc_now()
        entry.discharged_by = closer
        return entry.snapshot()

    def get(self, node_id: NodeIDLike) -> Optional[ScopeEntry]:
        entry = self._scopes.get(as_node_id(node_id))
        return entry.snapshot() if entry is not None else None

    def is_active(self, node_id: NodeIDLike) -> bool:
        entry = self._scopes.get(as_node_id(node_id))
        return entry is not None and entry.is_active

    def all_scopes(self) -> List[ScopeEntry]:
        """Every scope, active or closed, in NodeID order."""
        return [self._scopes[k].snapshot() for k in sorted(self._scopes)]

    def active_scopes(self) -> List[ScopeEntry]:
        return [e for e in self.all_scopes() if e.is_active]

    def containing_scopes(self, node_id: NodeIDLike) -> List[ScopeEntry]:
        """Active scopes containing node_id, outermost first."""
        key = as_node_id(node_id)
        found = [e for e in self._scopes.values() if e.is_active and e.contains(key)]
        return [e.snapshot() for e in sorted(found, key=lambda e: e.node_id.depth())]

    def scope_depth(self, node_id: NodeIDLike) -> int:
        return len(self.containing_scopes(node_id))

    def scope_info(self, node_id: NodeIDLike) -> ScopeInfo:
        return ScopeInfo(containing=self.containing_scopes(node_id))
