"""
Ledger event types.

Every change to a proof is recorded as one LedgerEvent. Replaying the events
in sequence order through apply_event() rebuilds the proof state exactly.
Taint is derived data and is recomputed during replay.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from ..node.assumption import Assumption
from ..node.challenge import Challenge
from ..node.definition import Definition
from ..node.external import External
from ..node.node import Node
from ..schema.epistemic import EpistemicState
from ..types.node_id import NodeIDLike, as_node_id
from ..types.timestamps import from_iso, to_iso, utc_now


class EventType(str, Enum):
    """Types of ledger events."""
    PROOF_INITIALIZED = "proof_initialized"
    NODE_CREATED = "node_created"
    NODES_CLAIMED = "nodes_claimed"
    CLAIM_REFRESHED = "claim_refreshed"
    NODES_RELEASED = "nodes_released"
    NODE_VALIDATED = "node_validated"
    NODE_ADMITTED = "node_admitted"
    NODE_REFUTED = "node_refuted"
    NODE_ARCHIVED = "node_archived"
    NODE_REOPENED = "node_reopened"
    WORKFLOW_CHANGED = "workflow_changed"
    TAINT_RECOMPUTED = "taint_recomputed"
    CHALLENGE_RAISED = "challenge_raised"
    CHALLENGE_RESOLVED = "challenge_resolved"
    CHALLENGE_WITHDRAWN = "challenge_withdrawn"
    DEF_ADDED = "def_added"
    ASSUMPTION_ADDED = "assumption_added"
    EXTERNAL_ADDED = "external_added"


# Epistemic events and the state each one moves its node to
EPISTEMIC_EVENTS: Dict[EventType, EpistemicState] = {
    EventType.NODE_VALIDATED: EpistemicState.VALIDATED,
    EventType.NODE_ADMITTED: EpistemicState.ADMITTED,
    EventType.NODE_REFUTED: EpistemicState.REFUTED,
    EventType.NODE_ARCHIVED: EpistemicState.ARCHIVED,
    EventType.NODE_REOPENED: EpistemicState.NEEDS_REFINEMENT,
}


@dataclass
class LedgerEvent:
    """
    One recorded change.

    Attributes:
        event_type: What happened
        payload: Event-specific data (JSON-compatible)
        timestamp: When it happened; replay uses it as the "now" of the change
        seq: Position in the ledger (None until appended)
    """
    event_type: EventType
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)
    seq: Optional[int] = None

    def __post_init__(self):
        self.event_type = EventType(self.event_type)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "event_type": self.event_type.value,
            "timestamp": to_iso(self.timestamp),
            "payload": self.payload,
        }
        if self.seq is not None:
            data["seq"] = self.seq
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LedgerEvent":
        return cls(
            event_type=EventType(data["event_type"]),
            payload=dict(data.get("payload") or {}),
            timestamp=from_iso(data.get("timestamp")) or utc_now(),
            seq=data.get("seq"),
        )


# =============================================================================
# Factories
# =============================================================================

def proof_initialized(conjecture: str, author: str, root: Node) -> LedgerEvent:
    return LedgerEvent(
        EventType.PROOF_INITIALIZED,
        {"conjecture": conjecture, "author": author, "node": root.to_dict()},
    )


def node_created(node: Node, agent: str = "") -> LedgerEvent:
    return LedgerEvent(EventType.NODE_CREATED, {"node": node.to_dict(), "agent": agent})


def nodes_claimed(node_ids: Iterable[NodeIDLike], agent: str) -> LedgerEvent:
    return LedgerEvent(
        EventType.NODES_CLAIMED,
        {"node_ids": [str(as_node_id(n)) for n in node_ids], "agent": agent},
    )


def claim_refreshed(node_id: NodeIDLike, agent: str) -> LedgerEvent:
    return LedgerEvent(
        EventType.CLAIM_REFRESHED,
        {"node_id": str(as_node_id(node_id)), "agent": agent},
    )


def nodes_released(node_ids: Iterable[NodeIDLike], agent: str) -> LedgerEvent:
    return LedgerEvent(
        EventType.NODES_RELEASED,
        {"node_ids": [str(as_node_id(n)) for n in node_ids], "agent": agent},
    )


def epistemic_event(
    event_type: EventType,
    node_id: NodeIDLike,
    agent: str = "",
    note: str = "",
) -> LedgerEvent:
    if event_type not in EPISTEMIC_EVENTS:
        raise ValueError(f"{event_type.value} is not an epistemic event")
    return LedgerEvent(
        event_type,
        {"node_id": str(as_node_id(node_id)), "agent": agent, "note": note},
    )


def workflow_changed(node_id: NodeIDLike, to_state: Any) -> LedgerEvent:
    return LedgerEvent(
        EventType.WORKFLOW_CHANGED,
        {"node_id": str(as_node_id(node_id)), "to": getattr(to_state, "value", to_state)},
    )


def taint_recomputed(changes: Iterable[Any]) -> LedgerEvent:
    return LedgerEvent(
        EventType.TAINT_RECOMPUTED,
        {"changes": [c.to_dict() for c in changes]},
    )


def challenge_raised(challenge: Challenge) -> LedgerEvent:
    return LedgerEvent(EventType.CHALLENGE_RAISED, {"challenge": challenge.to_dict()})


def challenge_resolved(challenge_id: str, resolution: str) -> LedgerEvent:
    return LedgerEvent(
        EventType.CHALLENGE_RESOLVED,
        {"challenge_id": challenge_id, "resolution": resolution},
    )


def challenge_withdrawn(challenge_id: str) -> LedgerEvent:
    return LedgerEvent(EventType.CHALLENGE_WITHDRAWN, {"challenge_id": challenge_id})


def def_added(definition: Definition) -> LedgerEvent:
    return LedgerEvent(EventType.DEF_ADDED, {"definition": definition.to_dict()})


def assumption_added(assumption: Assumption) -> LedgerEvent:
    return LedgerEvent(EventType.ASSUMPTION_ADDED, {"assumption": assumption.to_dict()})


def external_added(external: External) -> LedgerEvent:
    return LedgerEvent(EventType.EXTERNAL_ADDED, {"external": external.to_dict()})


def event_types(events: Iterable[LedgerEvent]) -> List[EventType]:
    return [e.event_type for e in events]
