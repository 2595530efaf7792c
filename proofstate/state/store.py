"""
Proof state store.

ProofState owns every entity of one proof (nodes, challenges, definitions,
assumptions, externals), indexed by ID, and is the only place they change.

Every public operation runs under one re-entrant lock and is all-or-nothing:
arguments and invariants are checked first, and nothing is written unless
all checks pass. Accessors hand out snapshot copies, never the stored objects.

Invariants kept here:
- IDs are unique per entity kind
- every non-root node's parent exists (the tree is built top-down)
- dependencies and validation deps reference existing nodes and are acyclic
- a node with an open critical/major challenge never reaches validated/admitted
- claim is a compare-and-set on (workflow_state, claimed_by)
- every stored type, rule and state is on the config's schema profile
- local_assume opens a scope; local_discharge closes the innermost one above it
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, FrozenSet, Iterable, List, Optional, Set

from ..config import EngineConfig, get_engine_config
from ..errors import (
    AlreadyClaimedError,
    BlockedByChallengeError,
    ChallengeLimitExceededError,
    ChallengeNotFoundError,
    DuplicateIDError,
    InvalidInputError,
    InvalidTransitionError,
    MissingParentError,
    NodeNotFoundError,
    NotClaimedByAgentError,
    ParseError,
    ScopeViolationError,
)
from ..node.assumption import Assumption
from ..node.challenge import Challenge
from ..node.context import (
    AssumptionRef,
    ContextRef,
    DefinitionRef,
    ExternalRef,
    UnknownRef,
)
from ..node.definition import Definition
from ..node.external import External
from ..node.node import Node
from ..schema.epistemic import (
    POSITIVE_TERMINAL_STATES,
    EpistemicState,
    coerce_epistemic_state,
    validate_epistemic_transition,
)
from ..schema.node_type import closes_scope, opens_scope
from ..schema.taint import TaintState
from ..schema.workflow import (
    WorkflowState,
    coerce_workflow_state,
    validate_workflow_transition,
)
from ..types.node_id import NodeID, NodeIDLike, as_node_id, sort_node_ids
from ..types.timestamps import ensure_utc, utc_now
from .graph import DEPENDENCIES, VALIDATION_DEPS, DependencyGraph
from .scope import ScopeEntry, ScopeInfo, ScopeTracker

logger = logging.getLogger(__name__)

# Epistemic states that close a node's open challenges
_SUPERSEDING_STATES = frozenset({EpistemicState.REFUTED, EpistemicState.ARCHIVED})


@dataclass
class ContextResolution:
    """
    Entities a node's context and scope tags point at.

    Attributes:
        definitions: Resolved def: tags
        assumptions: Resolved assume: tags
        externals: Resolved ext: tags
        scopes: Active local-assumption scopes cited as assume:<node id>
        missing: Well-formed refs whose target is not in the store, or
            names a scope that is already discharged
        unknown: Tags with an unrecognised prefix (inert)
    """
    definitions: List[Definition] = field(default_factory=list)
    assumptions: List[Assumption] = field(default_factory=list)
    externals: List[External] = field(default_factory=list)
    scopes: List[ScopeEntry] = field(default_factory=list)
    missing: List[ContextRef] = field(default_factory=list)
    unknown: List[UnknownRef] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.missing


class ProofState:
    """
    In-memory state of one proof.

    Args:
        config: Engine configuration (defaults to the process-wide config)
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or get_engine_config()
        self._lock = threading.RLock()

        self._nodes: Dict[NodeID, Node] = {}
        self._children: Dict[NodeID, List[NodeID]] = {}
        self._challenges: Dict[str, Challenge] = {}
        self._definitions: Dict[str, Definition] = {}
        self._definition_names: Dict[str, str] = {}
        self._assumptions: Dict[str, Assumption] = {}
        self._externals: Dict[str, External] = {}
        self._external_names: Dict[str, str] = {}

        self._graph = DependencyGraph()
        self._scopes = ScopeTracker()
        self._taint_dirty: Set[NodeID] = set()
        self._last_taint: Dict[NodeID, TaintState] = {}
        self._latest_seq = 0

    @property
    def lock(self) -> threading.RLock:
        """Store lock; hold it to run several operations as one transaction."""
        return self._lock

    # =========================================================================
    # Nodes
    # =========================================================================

    def add_node(self, node: Node) -> Node:
        """
        Add a node to the tree.

        Raises:
            DuplicateIDError: a node with this ID exists
            MissingParentError: the node is not a root and its parent is absent
            NodeNotFoundError: a dependency or validation dep is unknown
            CyclicDependencyError: the new edges would close a cycle
            InvalidStateError: the type, rule or a state is off the schema profile
            ScopeViolationError: a local_discharge has no open scope above it,
                or strict_context is on and a scope ref names a discharged scope
            InvalidInputError: strict_context is on and a context ref is missing

        Returns:
            Snapshot of the stored node
        """
        with self._lock:
            node_id = node.id
            if node_id in self._nodes:
                raise DuplicateIDError("node", node_id)
            parent_id = node_id.parent()
            if parent_id is not None and parent_id not in self._nodes:
                raise MissingParentError(node_id, parent_id)

            profile = self.config.schema_profile
            profile.require("node_types", node.node_type)
            profile.require("inference_types", node.inference)
            profile.require("workflow_states", node.workflow_state)
            profile.require("epistemic_states", node.epistemic_state)

            for relation, deps in (
                (DEPENDENCIES, node.dependencies),
                (VALIDATION_DEPS, node.validation_deps),
            ):
                for dep in deps:
                    if dep != node_id and dep not in self._nodes:
                        raise NodeNotFoundError(dep, f"{relation} of node {node_id}")
                self._graph.check_edges(node_id, deps, relation)

            closing: Optional[NodeID] = None
            if closes_scope(node.node_type):
                containing = self._scopes.containing_scopes(node_id)
                if not containing:
                    raise ScopeViolationError(node_id, "local_discharge outside any open scope")
                closing = containing[-1].node_id

            discharged = [
                ref for ref in node.scope_refs
                if self._lookup_ref(ref) is None and self._scope_ref_state(ref) is False
            ]
            if discharged:
                tags = [ref.to_tag() for ref in discharged]
                if self.config.strict_context:
                    raise ScopeViolationError(
                        node_id, f"references discharged scope: {', '.join(tags)}"
                    )
                logger.warning(f"[PROOF_STATE] Node {node_id} references discharged scope: {tags}")

            missing = [
                ref for ref in self._missing_refs(node.context_refs + node.scope_refs)
                if ref not in discharged
            ]
            if missing:
                tags = [ref.to_tag() for ref in missing]
                if self.config.strict_context:
                    raise InvalidInputError(
                        f"node {node_id} references unknown context: {', '.join(tags)}",
                        node_id=str(node_id),
                        missing=tags,
                    )
                logger.warning(f"[PROOF_STATE] Node {node_id} references unknown context: {tags}")

            stored = node.snapshot()
            stored.taint_state = TaintState.UNRESOLVED
            self._nodes[node_id] = stored
            self._children[node_id] = []
            if parent_id is not None:
                self._children[parent_id].append(node_id)
            self._graph.add_node(node_id, node.dependencies, node.validation_deps)
            self._taint_dirty.add(node_id)

            if opens_scope(stored.node_type):
                self._scopes.open_scope(node_id, stored.statement, now=stored.created)
                logger.debug(f"[PROOF_STATE] Opened scope at {node_id}")
            elif closing is not None:
                self._scopes.close_scope(closing, discharged_by=node_id, now=stored.created)
                logger.debug(f"[PROOF_STATE] Scope {closing} discharged by {node_id}")

            logger.debug(f"[PROOF_STATE] Added node {node_id} ({stored.node_type.value})")
            return stored.snapshot()

    def has_node(self, node_id: NodeIDLike) -> bool:
        with self._lock:
            return as_node_id(node_id) in self._nodes

    def get_node(self, node_id: NodeIDLike) -> Optional[Node]:
        """Snapshot of the node, or None if absent."""
        with self._lock:
            node = self._nodes.get(as_node_id(node_id))
            return node.snapshot() if node is not None else None

    def require_node(self, node_id: NodeIDLike) -> Node:
        """Snapshot of the node; raises NodeNotFoundError if absent."""
        with self._lock:
            return self._node(node_id).snapshot()

    def _node(self, node_id: NodeIDLike) -> Node:
        key = as_node_id(node_id)
        try:
            return self._nodes[key]
        except KeyError:
            raise NodeNotFoundError(key) from None

    def all_nodes(self) -> List[Node]:
        """Snapshots in insertion order (not ID order; callers sort)."""
        with self._lock:
            return [n.snapshot() for n in self._nodes.values()]

    def node_count(self) -> int:
        with self._lock:
            return len(self._nodes)

    def children_of(self, parent_id: NodeIDLike) -> List[Node]:
        """Direct children, in NodeID order."""
        with self._lock:
            parent = self._node(parent_id)
            return [self._nodes[c].snapshot() for c in sort_node_ids(self._children[parent.id])]

    def child_ids(self, parent_id: NodeIDLike) -> List[NodeID]:
        with self._lock:
            parent = self._node(parent_id)
            return sort_node_ids(self._children[parent.id])

    def all_children_validated(self, parent_id: NodeIDLike) -> bool:
        """
        True iff every direct child is validated or admitted.

        Vacuously true for a childless node.
        """
        with self._lock:
            parent = self._node(parent_id)
            return all(
                self._nodes[c].epistemic_state in POSITIVE_TERMINAL_STATES
                for c in self._children[parent.id]
            )

    def unmet_validation_deps(self, node_id: NodeIDLike) -> List[NodeID]:
        """Validation deps not yet validated or admitted, in NodeID order."""
        with self._lock:
            node = self._node(node_id)
            return sort_node_ids(
                d for d in node.validation_deps
                if self._nodes[d].epistemic_state not in POSITIVE_TERMINAL_STATES
            )

    def dependents_of(self, node_id: NodeIDLike) -> List[NodeID]:
        """Nodes whose dependencies reach node_id, in NodeID order."""
        with self._lock:
            node = self._node(node_id)
            return sort_node_ids(self._graph.transitive_dependents(node.id))

    @property
    def dependency_graph(self) -> DependencyGraph:
        return self._graph

    # =========================================================================
    # Epistemic transitions
    # =========================================================================

    def apply_epistemic_transition(
        self,
        node_id: NodeIDLike,
        to_state,
        now: Optional[datetime] = None,
    ) -> Node:
        """
        Move a node to a new epistemic state.

        The node and everything depending on it is marked taint-unresolved.
        Refuting or archiving a node supersedes its open challenges.

        Raises:
            NodeNotFoundError: unknown node
            InvalidStateError: to_state is not an epistemic state, or the
                schema profile excludes it
            InvalidTransitionError: the transition table forbids the move
            BlockedByChallengeError: positive terminal target with open
                critical/major challenges on the node
        """
        with self._lock:
            node = self._node(node_id)
            target = coerce_epistemic_state(to_state)
            self.config.schema_profile.require("epistemic_states", target)
            validate_epistemic_transition(node.epistemic_state, target)

            if target in POSITIVE_TERMINAL_STATES:
                blocking = self._blocking_challenge_ids(node.id)
                if blocking:
                    logger.warning(
                        f"[PROOF_STATE] Node {node.id} -> {target.value} blocked by {blocking}"
                    )
                    raise BlockedByChallengeError(node.id, blocking)

            previous = node.epistemic_state
            node.epistemic_state = target
            self._mark_stale(node.id)

            if target in _SUPERSEDING_STATES:
                when = now or utc_now()
                for challenge in self._challenges.values():
                    if challenge.target_id == node.id and challenge.is_open:
                        challenge.supersede(when)
                        logger.debug(f"[PROOF_STATE] Superseded challenge {challenge.id}")

            logger.debug(f"[PROOF_STATE] Node {node.id}: {previous.value} -> {target.value}")
            return node.snapshot()

    def _mark_stale(self, node_id: NodeID) -> None:
        stale = {node_id} | self._graph.transitive_dependents(node_id)
        for stale_id in stale:
            self._nodes[stale_id].taint_state = TaintState.UNRESOLVED
        self._taint_dirty |= stale

    # =========================================================================
    # Workflow (claims)
    # =========================================================================

    def claim(self, node_id: NodeIDLike, agent: str, now: Optional[datetime] = None) -> Node:
        """
        Compare-and-set claim of a node for an agent.

        Claiming a node the same agent already holds refreshes claimed_at.

        Raises:
            InvalidInputError: empty agent
            NodeNotFoundError: unknown node
            AlreadyClaimedError: held by a different agent
            InvalidTransitionError: the node is blocked
            InvalidStateError: the schema profile excludes claimed
        """
        if not agent or not agent.strip():
            raise InvalidInputError("agent must not be empty")
        when = ensure_utc(now) if now is not None else utc_now()
        with self._lock:
            node = self._node(node_id)
            self.config.schema_profile.require("workflow_states", WorkflowState.CLAIMED)
            if node.workflow_state == WorkflowState.CLAIMED:
                if node.claimed_by != agent:
                    raise AlreadyClaimedError(node.id, node.claimed_by, agent)
                node.claimed_at = when
                logger.debug(f"[PROOF_STATE] Node {node.id} claim refreshed by {agent}")
                return node.snapshot()
            validate_workflow_transition(node.workflow_state, WorkflowState.CLAIMED)
            node.workflow_state = WorkflowState.CLAIMED
            node.claimed_by = agent
            node.claimed_at = when
            logger.debug(f"[PROOF_STATE] Node {node.id} claimed by {agent}")
            return node.snapshot()

    def release(self, node_id: NodeIDLike, agent: str) -> Node:
        """
        Give up a claim.

        Raises:
            NodeNotFoundError: unknown node
            NotClaimedByAgentError: the node is not claimed by agent
        """
        with self._lock:
            node = self._node(node_id)
            if node.workflow_state != WorkflowState.CLAIMED or node.claimed_by != agent:
                raise NotClaimedByAgentError(node.id, agent, node.claimed_by)
            node.workflow_state = WorkflowState.AVAILABLE
            node.claimed_by = ""
            node.claimed_at = None
            logger.debug(f"[PROOF_STATE] Node {node.id} released by {agent}")
            return node.snapshot()

    def refresh_claim(self, node_id: NodeIDLike, agent: str, now: Optional[datetime] = None) -> Node:
        """
        Extend a claim held by agent.

        Raises:
            NotClaimedByAgentError: the node is not claimed by agent
        """
        when = ensure_utc(now) if now is not None else utc_now()
        with self._lock:
            node = self._node(node_id)
            if node.workflow_state != WorkflowState.CLAIMED or node.claimed_by != agent:
                raise NotClaimedByAgentError(node.id, agent, node.claimed_by)
            node.claimed_at = when
            return node.snapshot()

    def set_workflow_state(self, node_id: NodeIDLike, to_state) -> Node:
        """
        Explicitly move a node between workflow states.

        Entering claimed goes through claim(); leaving claimed clears the
        claim fields.

        Raises:
            InvalidStateError: unknown workflow state, or one the schema
                profile excludes
            InvalidTransitionError: the transition table forbids the move
        """
        with self._lock:
            node = self._node(node_id)
            target = coerce_workflow_state(to_state)
            self.config.schema_profile.require("workflow_states", target)
            if target == WorkflowState.CLAIMED:
                raise InvalidTransitionError(
                    node.workflow_state, target, "use claim() to claim a node", node.id
                )
            validate_workflow_transition(node.workflow_state, target)
            previous = node.workflow_state
            node.workflow_state = target
            node.claimed_by = ""
            node.claimed_at = None
            logger.info(f"[PROOF_STATE] Node {node.id} workflow {previous.value} -> {target.value}")
            return node.snapshot()

    def stale_claims(
        self,
        timeout_seconds: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> List[Node]:
        """
        Claimed nodes whose claim is older than the timeout, in NodeID order.

        Read-only: reclaiming is left to an external supervisor.
        """
        timeout = timedelta(
            seconds=timeout_seconds if timeout_seconds is not None else self.config.lock_timeout_seconds
        )
        when = ensure_utc(now) if now is not None else utc_now()
        with self._lock:
            stale = [
                n for n in self._nodes.values()
                if n.workflow_state == WorkflowState.CLAIMED
                and n.claimed_at is not None
                and when - n.claimed_at > timeout
            ]
            return [n.snapshot() for n in sorted(stale, key=lambda n: n.id)]

    # =========================================================================
    # Challenges
    # =========================================================================

    def add_challenge(self, challenge: Challenge) -> Challenge:
        """
        Raises:
            DuplicateIDError: challenge ID exists
            NodeNotFoundError: target node is unknown
            InvalidStateError: target or severity is off the schema profile
            ChallengeLimitExceededError: the node already has
                max_challenges_per_node open challenges
        """
        with self._lock:
            if challenge.id in self._challenges:
                raise DuplicateIDError("challenge", challenge.id)
            if challenge.target_id not in self._nodes:
                raise NodeNotFoundError(challenge.target_id, f"target of challenge {challenge.id}")
            profile = self.config.schema_profile
            profile.require("challenge_targets", challenge.target)
            profile.require("challenge_severities", challenge.severity)
            if challenge.is_open:
                open_count = sum(
                    1 for c in self._challenges.values()
                    if c.target_id == challenge.target_id and c.is_open
                )
                if open_count >= self.config.max_challenges_per_node:
                    raise ChallengeLimitExceededError(
                        challenge.target_id, open_count, self.config.max_challenges_per_node
                    )
            stored = challenge.snapshot()
            self._challenges[stored.id] = stored
            logger.debug(
                f"[PROOF_STATE] Challenge {stored.id} on node {stored.target_id} "
                f"({stored.severity.value}, {stored.target.value})"
            )
            return stored.snapshot()

    def _challenge(self, challenge_id: str) -> Challenge:
        try:
            return self._challenges[challenge_id]
        except KeyError:
            raise ChallengeNotFoundError(challenge_id) from None

    def get_challenge(self, challenge_id: str) -> Optional[Challenge]:
        with self._lock:
            challenge = self._challenges.get(challenge_id)
            return challenge.snapshot() if challenge is not None else None

    def require_challenge(self, challenge_id: str) -> Challenge:
        with self._lock:
            return self._challenge(challenge_id).snapshot()

    def all_challenges(self) -> List[Challenge]:
        """Snapshots in insertion order."""
        with self._lock:
            return [c.snapshot() for c in self._challenges.values()]

    def open_challenges(self) -> List[Challenge]:
        with self._lock:
            return [c.snapshot() for c in self._challenges.values() if c.is_open]

    def challenges_for(self, node_id: NodeIDLike) -> List[Challenge]:
        with self._lock:
            key = self._node(node_id).id
            return [c.snapshot() for c in self._challenges.values() if c.target_id == key]

    def blocking_challenges_for(self, node_id: NodeIDLike) -> List[Challenge]:
        """Open critical/major challenges on the node, ordered by ID."""
        with self._lock:
            key = self._node(node_id).id
            blocking = [c for c in self._challenges.values() if c.target_id == key and c.is_blocking]
            return [c.snapshot() for c in sorted(blocking, key=lambda c: c.id)]

    def _blocking_challenge_ids(self, node_id: NodeID) -> List[str]:
        return sorted(
            c.id for c in self._challenges.values()
            if c.target_id == node_id and c.is_blocking
        )

    def resolve_challenge(
        self,
        challenge_id: str,
        resolution: str,
        now: Optional[datetime] = None,
    ) -> Challenge:
        """
        Raises:
            ChallengeNotFoundError: unknown challenge
            InvalidInputError: empty resolution
            InvalidTransitionError: challenge is not open
        """
        with self._lock:
            challenge = self._challenge(challenge_id)
            challenge.resolve(resolution, now)
            logger.debug(f"[PROOF_STATE] Challenge {challenge_id} resolved")
            return challenge.snapshot()

    def withdraw_challenge(self, challenge_id: str, now: Optional[datetime] = None) -> Challenge:
        """
        Raises:
            ChallengeNotFoundError: unknown challenge
            InvalidTransitionError: challenge is not open
        """
        with self._lock:
            challenge = self._challenge(challenge_id)
            challenge.withdraw(now)
            logger.debug(f"[PROOF_STATE] Challenge {challenge_id} withdrawn")
            return challenge.snapshot()

    # =========================================================================
    # Definitions, assumptions, externals
    # =========================================================================

    def add_definition(self, definition: Definition) -> Definition:
        """Raises DuplicateIDError if the ID exists. Names are not unique; the first wins lookups."""
        with self._lock:
            if definition.id in self._definitions:
                raise DuplicateIDError("definition", definition.id)
            stored = definition.snapshot()
            self._definitions[stored.id] = stored
            self._definition_names.setdefault(stored.name, stored.id)
            logger.debug(f"[PROOF_STATE] Added definition {stored.name} ({stored.id})")
            return stored.snapshot()

    def get_definition(self, name_or_id: str) -> Optional[Definition]:
        """Look up by ID first, then by name."""
        with self._lock:
            definition = self._definitions.get(name_or_id)
            if definition is None:
                definition_id = self._definition_names.get(name_or_id)
                if definition_id is not None:
                    definition = self._definitions[definition_id]
            return definition.snapshot() if definition is not None else None

    def get_definition_by_name(self, name: str) -> Optional[Definition]:
        with self._lock:
            definition_id = self._definition_names.get(name)
            if definition_id is None:
                return None
            return self._definitions[definition_id].snapshot()

    def all_definitions(self) -> List[Definition]:
        with self._lock:
            return [d.snapshot() for d in self._definitions.values()]

    def add_assumption(self, assumption: Assumption) -> Assumption:
        with self._lock:
            if assumption.id in self._assumptions:
                raise DuplicateIDError("assumption", assumption.id)
            stored = assumption.snapshot()
            self._assumptions[stored.id] = stored
            logger.debug(f"[PROOF_STATE] Added assumption {stored.id}")
            return stored.snapshot()

    def get_assumption(self, assumption_id: str) -> Optional[Assumption]:
        with self._lock:
            assumption = self._assumptions.get(assumption_id)
            return assumption.snapshot() if assumption is not None else None

    def all_assumptions(self) -> List[Assumption]:
        with self._lock:
            return [a.snapshot() for a in self._assumptions.values()]

    def add_external(self, external: External) -> External:
        with self._lock:
            if external.id in self._externals:
                raise DuplicateIDError("external", external.id)
            stored = external.snapshot()
            self._externals[stored.id] = stored
            self._external_names.setdefault(stored.name, stored.id)
            logger.debug(f"[PROOF_STATE] Added external {stored.name} ({stored.id})")
            return stored.snapshot()

    def get_external(self, external_id: str) -> Optional[External]:
        with self._lock:
            external = self._externals.get(external_id)
            return external.snapshot() if external is not None else None

    def get_external_by_name(self, name: str) -> Optional[External]:
        with self._lock:
            external_id = self._external_names.get(name)
            if external_id is None:
                return None
            return self._externals[external_id].snapshot()

    def all_externals(self) -> List[External]:
        with self._lock:
            return [e.snapshot() for e in self._externals.values()]

    def _lookup_ref(self, ref: ContextRef):
        if isinstance(ref, DefinitionRef):
            definition = self._definitions.get(ref.name)
            if definition is None and ref.name in self._definition_names:
                definition = self._definitions[self._definition_names[ref.name]]
            return definition
        if isinstance(ref, AssumptionRef):
            return self._assumptions.get(ref.id)
        if isinstance(ref, ExternalRef):
            return self._externals.get(ref.id)
        return None

    def _scope_entry_for(self, ref: ContextRef) -> Optional[ScopeEntry]:
        if not isinstance(ref, AssumptionRef):
            return None
        try:
            key = NodeID.parse(ref.id)
        except ParseError:
            return None
        return self._scopes.get(key)

    def _scope_ref_state(self, ref: ContextRef) -> Optional[bool]:
        """True/False for a ref naming an active/discharged scope, None otherwise."""
        entry = self._scope_entry_for(ref)
        return entry.is_active if entry is not None else None

    def _missing_refs(self, refs: Iterable[ContextRef]) -> List[ContextRef]:
        return [
            ref for ref in refs
            if not isinstance(ref, UnknownRef)
            and self._lookup_ref(ref) is None
            and not self._scope_ref_state(ref)
        ]

    def resolve_context(self, node_id: NodeIDLike) -> ContextResolution:
        """Resolve a node's context and scope tags against the store."""
        with self._lock:
            node = self._node(node_id)
            result = ContextResolution()
            for ref in node.context_refs + node.scope_refs:
                if isinstance(ref, UnknownRef):
                    result.unknown.append(ref)
                    continue
                entity = self._lookup_ref(ref)
                if entity is None:
                    scope = self._scope_entry_for(ref)
                    if scope is not None and scope.is_active:
                        result.scopes.append(scope)
                    else:
                        result.missing.append(ref)
                elif isinstance(ref, DefinitionRef):
                    result.definitions.append(entity.snapshot())
                elif isinstance(ref, AssumptionRef):
                    result.assumptions.append(entity.snapshot())
                else:
                    result.externals.append(entity.snapshot())
            return result

    # =========================================================================
    # Assumption scopes
    # =========================================================================

    def get_scope(self, node_id: NodeIDLike) -> Optional[ScopeEntry]:
        """Scope opened at node_id, active or discharged; None if none."""
        with self._lock:
            return self._scopes.get(node_id)

    def all_scopes(self) -> List[ScopeEntry]:
        with self._lock:
            return self._scopes.all_scopes()

    def active_scopes(self) -> List[ScopeEntry]:
        """Scopes not yet discharged, in NodeID order."""
        with self._lock:
            return self._scopes.active_scopes()

    def scope_info(self, node_id: NodeIDLike) -> ScopeInfo:
        """Active scopes containing the node, outermost first."""
        with self._lock:
            return self._scopes.scope_info(self._node(node_id).id)

    def scope_balance(self) -> int:
        """Number of local_assume nodes still waiting for a local_discharge."""
        with self._lock:
            return len(self._scopes.active_scopes())

    def check_scope_balance(self) -> None:
        """
        Raises:
            ScopeViolationError: some local assumption is never discharged
        """
        with self._lock:
            unclosed = self._scopes.active_scopes()
            if unclosed:
                ids = [str(e.node_id) for e in unclosed]
                raise ScopeViolationError(
                    unclosed[0].node_id,
                    f"{len(unclosed)} local_assume node(s) without matching local_discharge: "
                    f"{', '.join(ids)}",
                    unclosed[0].node_id,
                )

    # =========================================================================
    # Taint bookkeeping (used by the taint propagator)
    # =========================================================================

    @property
    def taint_dirty(self) -> FrozenSet[NodeID]:
        """Nodes whose taint must be recomputed."""
        with self._lock:
            return frozenset(self._taint_dirty)

    @property
    def needs_taint_recompute(self) -> bool:
        with self._lock:
            return bool(self._taint_dirty)

    def mark_all_taint_dirty(self) -> None:
        with self._lock:
            for node in self._nodes.values():
                node.taint_state = TaintState.UNRESOLVED
            self._taint_dirty = set(self._nodes)

    def commit_taint(self, taints: Dict[NodeID, TaintState]) -> None:
        """Store recomputed taint values and clear them from the dirty set."""
        with self._lock:
            for node_id, taint in taints.items():
                self._node(node_id)
                if taint == TaintState.UNRESOLVED:
                    raise InvalidInputError(f"cannot commit unresolved taint for node {node_id}")
            for node_id, taint in taints.items():
                self._nodes[node_id].taint_state = taint
                self._last_taint[node_id] = taint
                self._taint_dirty.discard(node_id)

    def last_resolved_taint(self, node_id: NodeIDLike) -> Optional[TaintState]:
        """Taint from the last recomputation, None if never resolved."""
        with self._lock:
            return self._last_taint.get(as_node_id(node_id))

    # =========================================================================
    # Ledger sequence
    # =========================================================================

    @property
    def latest_seq(self) -> int:
        """Sequence number of the last ledger event applied to this state."""
        with self._lock:
            return self._latest_seq

    def set_latest_seq(self, seq: int) -> None:
        with self._lock:
            if seq < self._latest_seq:
                raise InvalidInputError(
                    f"ledger sequence cannot move backwards ({self._latest_seq} -> {seq})"
                )
            self._latest_seq = seq
