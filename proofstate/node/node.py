"""
Proof tree nodes.

A Node is one proof step. It carries three orthogonal statuses:
- workflow_state: who may touch it (available / claimed / blocked)
- epistemic_state: whether it is believed true
- taint_state: whether it rests on unverified or false ground

Nodes held by the state store are private to it; everything handed out is a
snapshot copy.
"""

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..errors import InvalidInputError
from ..schema.epistemic import EpistemicState, coerce_epistemic_state
from ..schema.inference import InferenceType, coerce_inference
from ..schema.node_type import NodeType, coerce_node_type
from ..schema.taint import TaintState, coerce_taint_state
from ..schema.workflow import WorkflowState, coerce_workflow_state
from ..types.node_id import NodeID, NodeIDLike, as_node_id
from ..types.timestamps import ensure_utc, from_iso, to_iso, utc_now
from .context import ContextRef, parse_context_refs
from .hashing import node_content_hash


def _node_ids(values: Iterable[NodeIDLike]) -> Tuple[NodeID, ...]:
    return tuple(as_node_id(v) for v in values)


def _tags(values: Iterable[str]) -> Tuple[str, ...]:
    if isinstance(values, str):
        raise InvalidInputError("tag list must be a sequence of strings, not a string")
    return tuple(str(v) for v in values)


@dataclass
class Node:
    """
    A single proof step.

    Attributes:
        id: Hierarchical identifier
        node_type: Kind of step
        statement: Mathematical assertion (plain text)
        inference: Inference rule that justifies the step
        latex: Optional LaTeX rendering of the statement
        workflow_state: Coordination state
        epistemic_state: Belief state
        taint_state: Derived trust state
        content_hash: SHA-256 over (type, statement, inference), fixed at creation
        created: Creation time (UTC)
        claimed_by: Agent holding the claim, empty when unclaimed
        claimed_at: Claim time, None when unclaimed
        context: Raw def:/assume:/ext: tags
        scope: Raw tags for local assumptions in scope
        dependencies: Nodes whose content this step relies on (drives taint)
        validation_deps: Nodes that must be validated before this one is accepted
    """
    id: NodeID
    node_type: NodeType
    statement: str
    inference: InferenceType
    latex: str = ""
    workflow_state: WorkflowState = WorkflowState.AVAILABLE
    epistemic_state: EpistemicState = EpistemicState.PENDING
    taint_state: TaintState = TaintState.UNRESOLVED
    content_hash: str = ""
    created: datetime = field(default_factory=utc_now)
    claimed_by: str = ""
    claimed_at: Optional[datetime] = None
    context: Tuple[str, ...] = ()
    scope: Tuple[str, ...] = ()
    dependencies: Tuple[NodeID, ...] = ()
    validation_deps: Tuple[NodeID, ...] = ()

    # Parsed forms of context/scope, derived once
    context_refs: Tuple[ContextRef, ...] = field(init=False, repr=False, compare=False)
    scope_refs: Tuple[ContextRef, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        self.id = as_node_id(self.id)
        self.node_type = coerce_node_type(self.node_type)
        self.inference = coerce_inference(self.inference)
        self.workflow_state = coerce_workflow_state(self.workflow_state)
        self.epistemic_state = coerce_epistemic_state(self.epistemic_state)
        self.taint_state = coerce_taint_state(self.taint_state)
        self.created = ensure_utc(self.created)
        if self.claimed_at is not None:
            self.claimed_at = ensure_utc(self.claimed_at)
        self.context = _tags(self.context)
        self.scope = _tags(self.scope)
        self.dependencies = _node_ids(self.dependencies)
        self.validation_deps = _node_ids(self.validation_deps)
        self.context_refs = parse_context_refs(self.context)
        self.scope_refs = parse_context_refs(self.scope)
        if not self.content_hash:
            self.content_hash = self.compute_content_hash()

    @classmethod
    def create(
        cls,
        node_id: NodeIDLike,
        node_type: Any,
        statement: str,
        inference: Any,
        latex: str = "",
        context: Iterable[str] = (),
        scope: Iterable[str] = (),
        dependencies: Iterable[NodeIDLike] = (),
        validation_deps: Iterable[NodeIDLike] = (),
        created: Optional[datetime] = None,
    ) -> "Node":
        """
        Create a fresh node: available, pending, taint unresolved.

        Raises:
            ParseError: node_id or a dependency ID is malformed
            InvalidStateError: node_type or inference is not a known member
            InvalidInputError: statement is empty
        """
        if not isinstance(statement, str) or not statement.strip():
            raise InvalidInputError("node statement must not be empty", node_id=str(node_id))
        return cls(
            id=as_node_id(node_id),
            node_type=node_type,
            statement=statement,
            inference=inference,
            latex=latex,
            created=created or utc_now(),
            context=context,
            scope=scope,
            dependencies=dependencies,
            validation_deps=validation_deps,
        )

    def compute_content_hash(self) -> str:
        return node_content_hash(self.node_type, self.statement, self.inference)

    def verify_content_hash(self) -> bool:
        """True if the stored hash still matches the content."""
        return self.content_hash == self.compute_content_hash()

    @property
    def parent_id(self) -> Optional[NodeID]:
        return self.id.parent()

    @property
    def is_claimed(self) -> bool:
        return self.workflow_state == WorkflowState.CLAIMED

    def depth(self) -> int:
        return self.id.depth()

    def snapshot(self) -> "Node":
        """Independent copy; all collection fields are tuples."""
        return dataclasses.replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "type": self.node_type.value,
            "statement": self.statement,
            "latex": self.latex,
            "inference": self.inference.value,
            "workflow_state": self.workflow_state.value,
            "epistemic_state": self.epistemic_state.value,
            "taint_state": self.taint_state.value,
            "content_hash": self.content_hash,
            "created": to_iso(self.created),
            "claimed_by": self.claimed_by,
            "claimed_at": to_iso(self.claimed_at),
            "context": list(self.context),
            "scope": list(self.scope),
            "dependencies": [str(d) for d in self.dependencies],
            "validation_deps": [str(d) for d in self.validation_deps],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        return cls(
            id=data["id"],
            node_type=data["type"],
            statement=data["statement"],
            inference=data["inference"],
            latex=data.get("latex", ""),
            workflow_state=data.get("workflow_state", WorkflowState.AVAILABLE),
            epistemic_state=data.get("epistemic_state", EpistemicState.PENDING),
            taint_state=data.get("taint_state", TaintState.UNRESOLVED),
            content_hash=data.get("content_hash", ""),
            created=from_iso(data.get("created")) or utc_now(),
            claimed_by=data.get("claimed_by", ""),
            claimed_at=from_iso(data.get("claimed_at")),
            context=data.get("context", ()),
            scope=data.get("scope", ()),
            dependencies=data.get("dependencies", ()),
            validation_deps=data.get("validation_deps", ()),
        )


def node_ids(nodes: Iterable[Node]) -> List[NodeID]:
    return [n.id for n in nodes]
