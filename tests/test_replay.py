"""
Tests for rebuilding proof state from ledger events.

Tests:
- Replay reproduces the live state
- Events are validated exactly like live operations
- Multi-node claim / release is all-or-nothing
- Errors carry ledger location
"""

import pytest

from proofstate.errors import (
    AlreadyClaimedError,
    InvalidTransitionError,
    LedgerInconsistentError,
    NotClaimedByAgentError,
)
from proofstate.ledger import (
    EventType,
    LedgerEvent,
    ProofLedger,
    apply_event,
    challenge_raised,
    challenge_resolved,
    epistemic_event,
    node_created,
    nodes_claimed,
    nodes_released,
    proof_initialized,
    replay,
    replay_ledger,
    taint_recomputed,
    workflow_changed,
)
from proofstate.node import Challenge, Node
from proofstate.schema import EpistemicState, TaintState, WorkflowState
from proofstate.state import ProofState


def _node(node_id, **kwargs):
    return Node.create(node_id, "claim", f"step {node_id}", "modus_ponens", **kwargs)


@pytest.fixture
def events():
    return [
        proof_initialized("P", "alice", _node("1")),
        nodes_claimed(["1"], "prover"),
        node_created(_node("1.1"), "prover"),
        node_created(_node("1.2", dependencies=["1.1"]), "prover"),
        epistemic_event(EventType.NODE_ADMITTED, "1.1", "verifier"),
        challenge_raised(Challenge.create("ch-1", "1.2", "gap", "why?", severity="critical")),
    ]


class TestReplay:
    """Tests for replay()."""

    def test_rebuilds_state(self, events, config):
        state = replay(events, config)
        assert state.node_count() == 3
        assert state.get_node("1").claimed_by == "prover"
        assert state.get_node("1.1").epistemic_state == EpistemicState.ADMITTED
        assert state.get_node("1.2").taint_state == TaintState.TAINTED
        assert [c.id for c in state.blocking_challenges_for("1.2")] == ["ch-1"]

    def test_without_taint_resolution(self, events, config):
        state = replay(events, config, resolve_taint=False)
        assert state.needs_taint_recompute
        assert state.get_node("1.2").taint_state == TaintState.UNRESOLVED

    def test_taint_recomputed_event(self, events, config):
        events.append(taint_recomputed([]))
        state = replay(events, config, resolve_taint=False)
        assert not state.needs_taint_recompute

    def test_epistemic_event_uses_recorded_time(self, events, config):
        events.append(epistemic_event(EventType.NODE_REFUTED, "1.2"))
        state = replay(events, config)
        challenge = state.get_challenge("ch-1")
        assert challenge.status.value == "superseded"
        assert challenge.resolved_at == events[-1].timestamp

    def test_sequence_tracked(self, events, config):
        for seq, event in enumerate(events, start=1):
            event.seq = seq
        assert replay(events, config).latest_seq == len(events)


class TestValidation:
    """Replayed events go through the store's checks."""

    def test_blocked_acceptance_is_inconsistent(self, events, config):
        events.append(epistemic_event(EventType.NODE_VALIDATED, "1.2"))
        with pytest.raises(LedgerInconsistentError):
            replay(events, config)

    def test_double_initialization(self, events, config):
        events.append(proof_initialized("Q", "bob", _node("2")))
        with pytest.raises(LedgerInconsistentError):
            replay(events, config)

    def test_non_root_initialization(self, config):
        with pytest.raises(LedgerInconsistentError):
            replay([proof_initialized("P", "alice", _node("1.1"))], config)

    def test_malformed_payload(self, config):
        with pytest.raises(LedgerInconsistentError):
            replay([LedgerEvent(EventType.NODE_CREATED, {"agent": "x"})], config)

    def test_resolving_unknown_challenge(self, events, config):
        events.append(challenge_resolved("ch-404", "done"))
        with pytest.raises(LedgerInconsistentError):
            replay(events, config)


class TestClaimEvents:
    """Multi-node claim and release events."""

    @pytest.fixture
    def state(self, config):
        state = ProofState(config)
        for node_id in ("1", "1.1", "1.2"):
            state.add_node(_node(node_id))
        return state

    def test_claim_all_or_nothing(self, state):
        state.claim("1.2", "other")
        with pytest.raises(AlreadyClaimedError):
            apply_event(state, nodes_claimed(["1.1", "1.2"], "prover"))
        assert state.get_node("1.1").workflow_state == WorkflowState.AVAILABLE

    def test_claim_blocked_all_or_nothing(self, state):
        state.set_workflow_state("1.2", "blocked")
        with pytest.raises(InvalidTransitionError):
            apply_event(state, nodes_claimed(["1.1", "1.2"], "prover"))
        assert state.get_node("1.1").claimed_by == ""

    def test_release_all_or_nothing(self, state):
        state.claim("1.1", "prover")
        with pytest.raises(NotClaimedByAgentError):
            apply_event(state, nodes_released(["1.1", "1.2"], "prover"))
        assert state.get_node("1.1").claimed_by == "prover"

    def test_batch_claim_and_release(self, state):
        apply_event(state, nodes_claimed(["1.1", "1.2"], "prover"))
        assert {n.claimed_by for n in state.children_of("1")} == {"prover"}
        apply_event(state, nodes_released(["1.1", "1.2"], "prover"))
        assert {n.workflow_state for n in state.children_of("1")} == {WorkflowState.AVAILABLE}

    def test_workflow_changed(self, state):
        apply_event(state, workflow_changed("1.1", WorkflowState.BLOCKED))
        assert state.get_node("1.1").workflow_state == WorkflowState.BLOCKED


class TestReplayLedger:
    """Tests for replay_ledger()."""

    def test_from_file(self, events, config):
        ledger = ProofLedger("replayed", config=config)
        ledger.append_if_sequence(events, expected_seq=0)
        state = replay_ledger(ledger)
        assert state.node_count() == 3
        assert state.latest_seq == len(events)

    def test_error_names_ledger(self, events, config):
        ledger = ProofLedger("broken", config=config)
        events.append(epistemic_event(EventType.NODE_VALIDATED, "1.2"))
        ledger.append_if_sequence(events, expected_seq=0)
        with pytest.raises(LedgerInconsistentError) as exc:
            replay_ledger(ledger)
        assert exc.value.path == str(ledger.ledger_path)
