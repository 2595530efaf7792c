"""
Rebuilding proof state from ledger events.

apply_event() is the single place where a recorded event turns into store
operations; the proof service uses it for new events as well, so live
changes and replayed changes go through exactly the same validation.
"""

import logging
from typing import Callable, Dict, Iterable, Optional

from ..config import EngineConfig
from ..errors import (
    AlreadyClaimedError,
    InvalidInputError,
    LedgerInconsistentError,
    NotClaimedByAgentError,
    ProofStateError,
)
from ..node.assumption import Assumption
from ..node.challenge import Challenge
from ..node.definition import Definition
from ..node.external import External
from ..node.node import Node
from ..schema.workflow import WorkflowState, validate_workflow_transition
from ..state.store import ProofState
from ..taint.propagate import TaintPropagator
from ..types.node_id import as_node_id
from .events import EPISTEMIC_EVENTS, EventType, LedgerEvent
from .ledger import ProofLedger

logger = logging.getLogger(__name__)


def _apply_initialized(state: ProofState, event: LedgerEvent) -> None:
    if state.node_count():
        raise InvalidInputError("proof is already initialized")
    root = Node.from_dict(event.payload["node"])
    if not root.id.is_root():
        raise InvalidInputError(f"initial node {root.id} is not a root")
    state.add_node(root)


def _apply_node_created(state: ProofState, event: LedgerEvent) -> None:
    state.add_node(Node.from_dict(event.payload["node"]))


def _apply_claimed(state: ProofState, event: LedgerEvent) -> None:
    agent = event.payload["agent"]
    node_ids = [as_node_id(n) for n in event.payload["node_ids"]]
    with state.lock:
        # Check every node first so a multi-node claim is all-or-nothing
        for node_id in node_ids:
            node = state.require_node(node_id)
            if node.workflow_state == WorkflowState.CLAIMED:
                if node.claimed_by != agent:
                    raise AlreadyClaimedError(node_id, node.claimed_by, agent)
            else:
                validate_workflow_transition(node.workflow_state, WorkflowState.CLAIMED)
        for node_id in node_ids:
            state.claim(node_id, agent, now=event.timestamp)


def _apply_claim_refreshed(state: ProofState, event: LedgerEvent) -> None:
    state.refresh_claim(event.payload["node_id"], event.payload["agent"], now=event.timestamp)


def _apply_released(state: ProofState, event: LedgerEvent) -> None:
    agent = event.payload["agent"]
    node_ids = [as_node_id(n) for n in event.payload["node_ids"]]
    with state.lock:
        for node_id in node_ids:
            node = state.require_node(node_id)
            if node.workflow_state != WorkflowState.CLAIMED or node.claimed_by != agent:
                raise NotClaimedByAgentError(node_id, agent, node.claimed_by)
        for node_id in node_ids:
            state.release(node_id, agent)


def _apply_epistemic(state: ProofState, event: LedgerEvent) -> None:
    state.apply_epistemic_transition(
        event.payload["node_id"],
        EPISTEMIC_EVENTS[event.event_type],
        now=event.timestamp,
    )


def _apply_workflow_changed(state: ProofState, event: LedgerEvent) -> None:
    state.set_workflow_state(event.payload["node_id"], event.payload["to"])


def _apply_taint_recomputed(state: ProofState, event: LedgerEvent) -> None:
    TaintPropagator(state).recompute()


def _apply_challenge_raised(state: ProofState, event: LedgerEvent) -> None:
    state.add_challenge(Challenge.from_dict(event.payload["challenge"]))


def _apply_challenge_resolved(state: ProofState, event: LedgerEvent) -> None:
    state.resolve_challenge(
        event.payload["challenge_id"],
        event.payload["resolution"],
        now=event.timestamp,
    )


def _apply_challenge_withdrawn(state: ProofState, event: LedgerEvent) -> None:
    state.withdraw_challenge(event.payload["challenge_id"], now=event.timestamp)


def _apply_def_added(state: ProofState, event: LedgerEvent) -> None:
    state.add_definition(Definition.from_dict(event.payload["definition"]))


def _apply_assumption_added(state: ProofState, event: LedgerEvent) -> None:
    state.add_assumption(Assumption.from_dict(event.payload["assumption"]))


def _apply_external_added(state: ProofState, event: LedgerEvent) -> None:
    state.add_external(External.from_dict(event.payload["external"]))


_HANDLERS: Dict[EventType, Callable[[ProofState, LedgerEvent], None]] = {
    EventType.PROOF_INITIALIZED: _apply_initialized,
    EventType.NODE_CREATED: _apply_node_created,
    EventType.NODES_CLAIMED: _apply_claimed,
    EventType.CLAIM_REFRESHED: _apply_claim_refreshed,
    EventType.NODES_RELEASED: _apply_released,
    EventType.NODE_VALIDATED: _apply_epistemic,
    EventType.NODE_ADMITTED: _apply_epistemic,
    EventType.NODE_REFUTED: _apply_epistemic,
    EventType.NODE_ARCHIVED: _apply_epistemic,
    EventType.NODE_REOPENED: _apply_epistemic,
    EventType.WORKFLOW_CHANGED: _apply_workflow_changed,
    EventType.TAINT_RECOMPUTED: _apply_taint_recomputed,
    EventType.CHALLENGE_RAISED: _apply_challenge_raised,
    EventType.CHALLENGE_RESOLVED: _apply_challenge_resolved,
    EventType.CHALLENGE_WITHDRAWN: _apply_challenge_withdrawn,
    EventType.DEF_ADDED: _apply_def_added,
    EventType.ASSUMPTION_ADDED: _apply_assumption_added,
    EventType.EXTERNAL_ADDED: _apply_external_added,
}


def apply_event(state: ProofState, event: LedgerEvent) -> None:
    """
    Apply one event to the state through the store's validated operations.

    Raises:
        ProofStateError: the event is not valid against the current state
        LedgerInconsistentError: the payload is missing required fields
    """
    handler = _HANDLERS[event.event_type]
    try:
        handler(state, event)
    except (KeyError, TypeError) as e:
        raise LedgerInconsistentError(
            f"event {event.seq or '?'} ({event.event_type.value}) has a malformed payload: {e}"
        ) from e
    if event.seq is not None:
        state.set_latest_seq(event.seq)


def replay(
    events: Iterable[LedgerEvent],
    config: Optional[EngineConfig] = None,
    resolve_taint: bool = True,
) -> ProofState:
    """
    Rebuild a ProofState from events in sequence order.

    Args:
        events: Events to apply
        config: Engine configuration for the new state
        resolve_taint: Recompute taint once all events are applied

    Raises:
        LedgerInconsistentError: an event cannot be applied
    """
    state = ProofState(config)
    count = 0
    for event in events:
        try:
            apply_event(state, event)
        except LedgerInconsistentError:
            raise
        except ProofStateError as e:
            raise LedgerInconsistentError(
                f"event {event.seq or '?'} ({event.event_type.value}) cannot be applied: {e}"
            ) from e
        count += 1
    if resolve_taint and state.needs_taint_recompute:
        TaintPropagator(state).recompute()
    logger.debug(f"[LEDGER] Replayed {count} events (seq {state.latest_seq})")
    return state


def replay_ledger(
    ledger: ProofLedger,
    config: Optional[EngineConfig] = None,
    resolve_taint: bool = True,
) -> ProofState:
    """Rebuild the state recorded in a ledger file."""
    try:
        return replay(ledger.read_all(), config or ledger.config, resolve_taint)
    except LedgerInconsistentError as e:
        if e.path is not None:
            raise
        raise LedgerInconsistentError(e.reason, path=ledger.ledger_path) from e
