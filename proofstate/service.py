"""
Proof Service.

Agent-facing actions on one proof. Each action is a single transaction:

1. Load the proof state (replayed from the ledger)
2. Build the event(s) describing the action
3. Apply them to the loaded state, which runs every store validation
4. Append them to the ledger with compare-and-set on the sequence number

If another writer appended between steps 1 and 4 the action fails with
ConcurrentModificationError and nothing is written; the caller reloads and
retries. claim() does that reload once itself, so racing claimants see either
success or AlreadyClaimedError. With the ledger disabled the service keeps one
in-memory state.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional

from .challenges.lifecycle import ChallengeManager
from .config import EngineConfig, get_engine_config
from .errors import (
    ChildLimitExceededError,
    ConcurrentModificationError,
    DepthExceededError,
    InvalidInputError,
    NotClaimedByAgentError,
    ValidationDepsNotMetError,
)
from .jobs.finder import JobResult, find_jobs_in_state
from .ledger import events as ev
from .ledger.events import EventType, LedgerEvent
from .ledger.ledger import ProofLedger
from .ledger.replay import apply_event, replay_ledger
from .node.assumption import Assumption
from .node.challenge import Challenge
from .node.definition import Definition
from .node.external import External
from .node.node import Node
from .schema.epistemic import POSITIVE_TERMINAL_STATES, EpistemicState
from .schema.inference import InferenceType
from .schema.node_type import NodeType
from .schema.taint import TaintState
from .schema.workflow import WorkflowState, coerce_workflow_state
from .state.scope import ScopeEntry
from .state.store import ProofState
from .taint.propagate import TaintChange, TaintPropagator, ensure_resolved
from .types.node_id import NodeID, NodeIDLike, as_node_id

logger = logging.getLogger(__name__)


@dataclass
class ProofStatus:
    """Counts summarising a proof, for the presentation layer."""
    proof_id: str
    total_nodes: int = 0
    workflow: Dict[str, int] = field(default_factory=dict)
    epistemic: Dict[str, int] = field(default_factory=dict)
    taint: Dict[str, int] = field(default_factory=dict)
    open_challenges: int = 0
    blocking_challenges: int = 0
    open_scopes: int = 0
    latest_seq: int = 0
    root_state: Optional[EpistemicState] = None

    @property
    def is_complete(self) -> bool:
        """Root validated or admitted."""
        return self.root_state in POSITIVE_TERMINAL_STATES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proof_id": self.proof_id,
            "total_nodes": self.total_nodes,
            "workflow": dict(self.workflow),
            "epistemic": dict(self.epistemic),
            "taint": dict(self.taint),
            "open_challenges": self.open_challenges,
            "blocking_challenges": self.blocking_challenges,
            "open_scopes": self.open_scopes,
            "latest_seq": self.latest_seq,
            "root_state": self.root_state.value if self.root_state else None,
            "is_complete": self.is_complete,
        }


class _Transaction:
    """Events applied to one loaded state, waiting to be persisted."""

    def __init__(self, state: ProofState):
        self.state = state
        self.expected_seq = state.latest_seq
        self.events: List[LedgerEvent] = []

    def apply(self, event: LedgerEvent) -> None:
        apply_event(self.state, event)
        self.events.append(event)


class ProofService:
    """
    Agent-facing operations on one proof.

    Usage:
        service = ProofService("goldbach-weak", base_dir="proofs")
        service.init("Every odd n > 5 is a sum of three primes", author="alice")
        service.claim("1", "prover-1")
        child = service.refine("1", "prover-1", "Reduce to n > 10^27")
        jobs = service.jobs()
    """

    def __init__(
        self,
        proof_id: str,
        config: Optional[EngineConfig] = None,
        base_dir: Optional[Path] = None,
    ):
        """
        Args:
            proof_id: Proof identifier
            config: Optional EngineConfig
            base_dir: Optional ledger base directory override
        """
        self.proof_id = proof_id
        self.config = config or get_engine_config()
        self.ledger: Optional[ProofLedger] = None
        self._memory_state: Optional[ProofState] = None
        if self.config.ledger_enabled:
            self.ledger = ProofLedger(proof_id, config=self.config, base_dir=base_dir)
        else:
            self._memory_state = ProofState(self.config)

    # =========================================================================
    # Loading and committing
    # =========================================================================

    def load_state(self, resolve_taint: bool = True) -> ProofState:
        """
        Current state of the proof.

        With the ledger enabled this is a fresh replay each call, so callers
        get a state they may inspect freely.
        """
        if self.ledger is None:
            state = self._memory_state
            if resolve_taint:
                ensure_resolved(state)
            return state
        return replay_ledger(self.ledger, self.config, resolve_taint=resolve_taint)

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[_Transaction]:
        state = self.load_state(resolve_taint=False)
        with state.lock:
            tx = _Transaction(state)
            yield tx
            if self.ledger is not None and tx.events:
                seqs = self.ledger.append_if_sequence(tx.events, tx.expected_seq)
                state.set_latest_seq(seqs[-1])
            logger.debug(f"[PROOF_SERVICE] {operation} committed {len(tx.events)} event(s)")

    def is_initialized(self) -> bool:
        if self.ledger is None:
            return self._memory_state.node_count() > 0
        return self.ledger.latest_seq() > 0

    # =========================================================================
    # Proof lifecycle
    # =========================================================================

    def init(self, conjecture: str, author: str = "", latex: str = "") -> Node:
        """
        Create the proof with its root node "1".

        Raises:
            InvalidInputError: empty conjecture or proof already initialized
        """
        if not conjecture or not conjecture.strip():
            raise InvalidInputError("conjecture must not be empty")
        root = Node.create(
            NodeID.root(),
            NodeType.CLAIM,
            conjecture,
            InferenceType.ASSUMPTION,
            latex=latex,
        )
        with self._transaction("init") as tx:
            if tx.state.node_count():
                raise InvalidInputError(f"proof {self.proof_id} is already initialized")
            tx.apply(ev.proof_initialized(conjecture, author, root))
        logger.info(f"[PROOF_SERVICE] Initialized proof {self.proof_id}")
        return tx.state.require_node(root.id)

    # =========================================================================
    # Claims
    # =========================================================================

    def claim(self, node_id: NodeIDLike, agent: str) -> Node:
        """
        A claim that loses the ledger race to another writer is retried once
        against the reloaded state.

        Raises:
            AlreadyClaimedError: held by another agent
            InvalidTransitionError: node is blocked
            ConcurrentModificationError: the ledger moved again during the retry
        """
        if not agent or not agent.strip():
            raise InvalidInputError("agent must not be empty")
        key = as_node_id(node_id)
        try:
            tx = self._claim_once(key, agent)
        except ConcurrentModificationError as e:
            logger.info(f"[PROOF_SERVICE] Claim of {key} by {agent} raced a writer, retrying: {e}")
            tx = self._claim_once(key, agent)
        logger.info(f"[PROOF_SERVICE] {agent} claimed {key}")
        return tx.state.require_node(key)

    def _claim_once(self, key: NodeID, agent: str) -> _Transaction:
        with self._transaction("claim") as tx:
            tx.apply(ev.nodes_claimed([key], agent))
        return tx

    def release(self, node_id: NodeIDLike, agent: str) -> Node:
        key = as_node_id(node_id)
        with self._transaction("release") as tx:
            tx.apply(ev.nodes_released([key], agent))
        logger.info(f"[PROOF_SERVICE] {agent} released {key}")
        return tx.state.require_node(key)

    def refresh_claim(self, node_id: NodeIDLike, agent: str) -> Node:
        key = as_node_id(node_id)
        with self._transaction("refresh_claim") as tx:
            tx.apply(ev.claim_refreshed(key, agent))
        return tx.state.require_node(key)

    def set_workflow_state(self, node_id: NodeIDLike, to_state: Any) -> Node:
        """Explicit workflow move (e.g. into or out of blocked)."""
        key = as_node_id(node_id)
        with self._transaction("set_workflow_state") as tx:
            tx.apply(ev.workflow_changed(key, coerce_workflow_state(to_state)))
        return tx.state.require_node(key)

    def stale_claims(self, timeout_seconds: Optional[float] = None) -> List[Node]:
        return self.load_state(resolve_taint=False).stale_claims(timeout_seconds)

    # =========================================================================
    # Refinement
    # =========================================================================

    def _next_child_id(self, state: ProofState, parent_id: NodeID) -> NodeID:
        children = state.child_ids(parent_id)
        if len(children) >= self.config.max_children:
            raise ChildLimitExceededError(parent_id, self.config.max_children)
        highest = max((c.segments[-1] for c in children), default=0)
        return parent_id.child(highest + 1)

    def refine(
        self,
        parent_id: NodeIDLike,
        agent: str,
        statement: str,
        node_type: Any = NodeType.CLAIM,
        inference: Any = InferenceType.MODUS_PONENS,
        latex: str = "",
        context: Iterable[str] = (),
        scope: Iterable[str] = (),
        dependencies: Iterable[NodeIDLike] = (),
        validation_deps: Iterable[NodeIDLike] = (),
        child_id: Optional[NodeIDLike] = None,
    ) -> Node:
        """
        Add a child step under a node the agent has claimed.

        Args:
            parent_id: Claimed node being refined
            agent: Agent holding the claim
            statement: Child's assertion
            child_id: Explicit child ID (must be a direct child of parent_id);
                by default the next free child number is used

        Raises:
            NotClaimedByAgentError: parent not claimed by agent
            ChildLimitExceededError: parent already has max_children children
            DepthExceededError: child would be deeper than max_depth
            InvalidInputError: child_id is not a direct child of parent_id
        """
        parent_key = as_node_id(parent_id)
        with self._transaction("refine") as tx:
            parent = tx.state.require_node(parent_key)
            if parent.workflow_state != WorkflowState.CLAIMED or parent.claimed_by != agent:
                raise NotClaimedByAgentError(parent_key, agent, parent.claimed_by)

            if child_id is None:
                new_id = self._next_child_id(tx.state, parent_key)
            else:
                new_id = as_node_id(child_id)
                if new_id.parent() != parent_key:
                    raise InvalidInputError(
                        f"{new_id} is not a direct child of {parent_key}",
                        node_id=str(new_id),
                    )
                if len(tx.state.child_ids(parent_key)) >= self.config.max_children:
                    raise ChildLimitExceededError(parent_key, self.config.max_children)

            if new_id.depth() > self.config.max_depth:
                raise DepthExceededError(new_id, new_id.depth(), self.config.max_depth)
            if new_id.depth() >= self.config.warn_depth:
                logger.warning(
                    f"[PROOF_SERVICE] Node {new_id} at depth {new_id.depth()} "
                    f"(warn_depth {self.config.warn_depth}); consider a shallower decomposition"
                )

            node = Node.create(
                new_id,
                node_type,
                statement,
                inference,
                latex=latex,
                context=context,
                scope=scope,
                dependencies=dependencies,
                validation_deps=validation_deps,
            )
            tx.apply(ev.node_created(node, agent))
        logger.info(f"[PROOF_SERVICE] {agent} refined {parent_key} with {new_id}")
        return tx.state.require_node(new_id)

    # =========================================================================
    # Epistemic actions
    # =========================================================================

    def _epistemic(self, event_type: EventType, node_id: NodeIDLike, agent: str, note: str) -> Node:
        key = as_node_id(node_id)
        with self._transaction(event_type.value) as tx:
            tx.apply(ev.epistemic_event(event_type, key, agent, note))
        logger.info(f"[PROOF_SERVICE] {event_type.value}: {key}")
        return tx.state.require_node(key)

    def accept(self, node_id: NodeIDLike, agent: str = "", note: str = "") -> Node:
        """
        Mark a node validated.

        Raises:
            ValidationDepsNotMetError: a validation dependency is not yet
                validated or admitted
            BlockedByChallengeError: open critical/major challenges
            InvalidTransitionError: node is not pending or needs_refinement
        """
        key = as_node_id(node_id)
        with self._transaction("accept") as tx:
            unmet = tx.state.unmet_validation_deps(key)
            if unmet:
                raise ValidationDepsNotMetError(key, unmet)
            tx.apply(ev.epistemic_event(EventType.NODE_VALIDATED, key, agent, note))
        logger.info(f"[PROOF_SERVICE] Accepted {key}")
        return tx.state.require_node(key)

    def admit(self, node_id: NodeIDLike, agent: str = "", note: str = "") -> Node:
        """Accept without full verification; the node becomes self_admitted."""
        return self._epistemic(EventType.NODE_ADMITTED, node_id, agent, note)

    def refute(self, node_id: NodeIDLike, agent: str = "", note: str = "") -> Node:
        return self._epistemic(EventType.NODE_REFUTED, node_id, agent, note)

    def archive(self, node_id: NodeIDLike, agent: str = "", note: str = "") -> Node:
        return self._epistemic(EventType.NODE_ARCHIVED, node_id, agent, note)

    def reopen(self, node_id: NodeIDLike, agent: str = "", note: str = "") -> Node:
        """Send a validated node back to needs_refinement."""
        return self._epistemic(EventType.NODE_REOPENED, node_id, agent, note)

    # =========================================================================
    # Challenges
    # =========================================================================

    def challenge(
        self,
        node_id: NodeIDLike,
        target: Any,
        reason: str,
        severity: Optional[Any] = None,
        raised_by: str = "",
    ) -> Challenge:
        """
        Raise a challenge against a node.

        Raises:
            NodeNotFoundError: unknown node
            InvalidInputError: empty reason
            InvalidStateError: unknown target or severity, or one the schema
                profile excludes
            ChallengeLimitExceededError: the node has too many open challenges
        """
        with self._transaction("challenge") as tx:
            manager = ChallengeManager(tx.state, self.config)
            challenge = manager.build_challenge(node_id, target, reason, severity, raised_by)
            tx.apply(ev.challenge_raised(challenge))
        logger.info(
            f"[PROOF_SERVICE] Challenge {challenge.id} on {challenge.target_id} "
            f"({challenge.severity.value})"
        )
        return tx.state.require_challenge(challenge.id)

    def resolve_challenge(self, challenge_id: str, resolution: str) -> Challenge:
        with self._transaction("resolve_challenge") as tx:
            tx.apply(ev.challenge_resolved(challenge_id, resolution))
        logger.info(f"[PROOF_SERVICE] Resolved challenge {challenge_id}")
        return tx.state.require_challenge(challenge_id)

    def withdraw_challenge(self, challenge_id: str) -> Challenge:
        with self._transaction("withdraw_challenge") as tx:
            tx.apply(ev.challenge_withdrawn(challenge_id))
        logger.info(f"[PROOF_SERVICE] Withdrew challenge {challenge_id}")
        return tx.state.require_challenge(challenge_id)

    # =========================================================================
    # Definitions, assumptions, externals
    # =========================================================================

    def add_definition(self, name: str, content: str) -> Definition:
        definition = Definition.create(name, content)
        with self._transaction("add_definition") as tx:
            tx.apply(ev.def_added(definition))
        return definition

    def add_assumption(self, statement: str, justification: str = "") -> Assumption:
        assumption = Assumption.create(statement, justification)
        with self._transaction("add_assumption") as tx:
            tx.apply(ev.assumption_added(assumption))
        return assumption

    def add_external(self, name: str, source: str, notes: str = "") -> External:
        external = External.create(name, source, notes)
        with self._transaction("add_external") as tx:
            tx.apply(ev.external_added(external))
        return external

    # =========================================================================
    # Derived state and queries
    # =========================================================================

    def recompute_taint(self) -> List[TaintChange]:
        """
        Resolve taint and record what changed since it was last resolved on
        the stored state (the last taint_recomputed event for a ledger).

        Nothing is written when no node's taint changed.
        """
        with self._transaction("recompute_taint") as tx:
            changes = TaintPropagator(tx.state).recompute()
            if changes:
                tx.apply(ev.taint_recomputed(changes))
        if changes:
            logger.info(f"[PROOF_SERVICE] Taint changed on {len(changes)} node(s)")
        return changes

    def jobs(self) -> JobResult:
        """Prover and verifier jobs in NodeID order."""
        return find_jobs_in_state(self.load_state()).sorted()

    def status(self) -> ProofStatus:
        state = self.load_state()
        nodes = state.all_nodes()
        status = ProofStatus(proof_id=self.proof_id, total_nodes=len(nodes))
        status.workflow = {s.value: 0 for s in WorkflowState}
        status.epistemic = {s.value: 0 for s in EpistemicState}
        status.taint = {s.value: 0 for s in TaintState}
        for node in nodes:
            status.workflow[node.workflow_state.value] += 1
            status.epistemic[node.epistemic_state.value] += 1
            status.taint[node.taint_state.value] += 1
        open_challenges = state.open_challenges()
        status.open_challenges = len(open_challenges)
        status.blocking_challenges = sum(1 for c in open_challenges if c.is_blocking)
        status.open_scopes = state.scope_balance()
        status.latest_seq = state.latest_seq
        root = state.get_node(NodeID.root())
        if root is not None:
            status.root_state = root.epistemic_state
        return status

    def get_node(self, node_id: NodeIDLike) -> Optional[Node]:
        return self.load_state().get_node(node_id)

    def all_nodes(self) -> List[Node]:
        """All nodes in NodeID order."""
        return sorted(self.load_state().all_nodes(), key=lambda n: n.id)

    def all_challenges(self) -> List[Challenge]:
        return self.load_state(resolve_taint=False).all_challenges()

    def scopes(self) -> List[ScopeEntry]:
        """Every assumption scope, active or discharged, in NodeID order."""
        return self.load_state(resolve_taint=False).all_scopes()

