"""
Tests for the ledger-backed proof service.

Tests:
- Proof initialization and persistence across service instances
- Claims and refinement (child numbering, limits)
- Acceptance gates (validation deps, blocking challenges)
- Taint recomputation events
- Jobs and status
- Schema profile and challenge limits through the service
- Assumption scopes persisted through the ledger
- Optimistic concurrency (including the claim retry) and the in-memory mode
"""

import logging
from dataclasses import replace

import pytest

from proofstate.errors import (
    AlreadyClaimedError,
    BlockedByChallengeError,
    ChallengeLimitExceededError,
    ChildLimitExceededError,
    ConcurrentModificationError,
    DepthExceededError,
    DuplicateIDError,
    InvalidInputError,
    InvalidStateError,
    InvalidTransitionError,
    NotClaimedByAgentError,
    ScopeViolationError,
    ValidationDepsNotMetError,
)
from proofstate.ledger import EventType, event_types
from proofstate.schema import (
    ChallengeStatus,
    EpistemicState,
    InferenceType,
    SchemaProfile,
    TaintState,
    WorkflowState,
)
from proofstate.service import ProofService


@pytest.fixture
def service(config):
    svc = ProofService("proof-1", config=config)
    svc.init("There are infinitely many primes", author="euclid")
    return svc


@pytest.fixture
def refined(service):
    """Root claimed by prover with children 1.1 and 1.2 (1.2 depends on 1.1)."""
    service.claim("1", "prover")
    service.refine("1", "prover", "Assume finitely many primes")
    service.refine("1", "prover", "Their product plus one has a new prime factor",
                   dependencies=["1.1"])
    return service


class TestInit:
    """Tests for proof initialization."""

    def test_root(self, service):
        root = service.get_node("1")
        assert root.statement == "There are infinitely many primes"
        assert root.inference == InferenceType.ASSUMPTION
        assert root.workflow_state == WorkflowState.AVAILABLE
        assert root.taint_state == TaintState.CLEAN
        assert service.is_initialized()

    def test_double_init(self, service):
        with pytest.raises(InvalidInputError):
            service.init("again")

    def test_empty_conjecture(self, config):
        with pytest.raises(InvalidInputError):
            ProofService("proof-2", config=config).init("  ")

    def test_persisted(self, service, config):
        other = ProofService("proof-1", config=config)
        assert other.is_initialized()
        assert other.get_node("1").statement == "There are infinitely many primes"
        events = service.ledger.read_all()
        assert event_types(events) == [EventType.PROOF_INITIALIZED]
        assert events[0].payload["author"] == "euclid"


class TestClaims:
    """Tests for claim operations through the service."""

    def test_claim_and_release(self, service):
        assert service.claim("1", "prover").claimed_by == "prover"
        with pytest.raises(AlreadyClaimedError):
            service.claim("1", "intruder")
        assert service.release("1", "prover").workflow_state == WorkflowState.AVAILABLE
        assert service.ledger.latest_seq() == 3

    def test_failed_operation_writes_nothing(self, service):
        with pytest.raises(NotClaimedByAgentError):
            service.release("1", "prover")
        assert service.ledger.latest_seq() == 1

    def test_blocked(self, service):
        service.set_workflow_state("1", "blocked")
        with pytest.raises(InvalidTransitionError):
            service.claim("1", "prover")
        service.set_workflow_state("1", WorkflowState.AVAILABLE)
        service.claim("1", "prover")

    def test_refresh_and_stale(self, service):
        service.claim("1", "prover")
        service.refresh_claim("1", "prover")
        assert service.stale_claims() == []
        assert [str(n.id) for n in service.stale_claims(timeout_seconds=-1)] == ["1"]


class TestRefine:
    """Tests for refinement."""

    def test_children_numbered(self, refined):
        assert [str(n.id) for n in refined.all_nodes()] == ["1", "1.1", "1.2"]
        assert refined.get_node("1.2").dependencies == (refined.get_node("1.1").id,)

    def test_requires_claim(self, service):
        with pytest.raises(NotClaimedByAgentError):
            service.refine("1", "prover", "step")
        service.claim("1", "prover")
        with pytest.raises(NotClaimedByAgentError):
            service.refine("1", "someone-else", "step")

    def test_explicit_child_id(self, refined):
        assert str(refined.refine("1", "prover", "step", child_id="1.5").id) == "1.5"
        assert str(refined.refine("1", "prover", "next").id) == "1.6"
        with pytest.raises(DuplicateIDError):
            refined.refine("1", "prover", "again", child_id="1.5")
        with pytest.raises(InvalidInputError):
            refined.refine("1", "prover", "nested", child_id="1.1.1")

    def test_empty_statement(self, refined):
        with pytest.raises(InvalidInputError):
            refined.refine("1", "prover", "")

    def test_child_limit(self, tmp_path, config):
        svc = ProofService("small", config=replace(config, max_children=2))
        svc.init("P")
        svc.claim("1", "prover")
        svc.refine("1", "prover", "a")
        svc.refine("1", "prover", "b")
        with pytest.raises(ChildLimitExceededError):
            svc.refine("1", "prover", "c")

    def test_depth_limit(self, config):
        svc = ProofService("shallow", config=replace(config, max_depth=2, warn_depth=2))
        svc.init("P")
        svc.claim("1", "prover")
        svc.refine("1", "prover", "a")
        svc.claim("1.1", "prover")
        with pytest.raises(DepthExceededError):
            svc.refine("1.1", "prover", "too deep")

    def test_depth_warning(self, refined, caplog):
        refined.claim("1.1", "prover")
        with caplog.at_level(logging.WARNING, logger="proofstate.service"):
            refined.refine("1.1", "prover", "deeper")
        assert "1.1.1 at depth 3" in caplog.text

    def test_context_refs(self, refined):
        definition = refined.add_definition("prime", "an integer > 1 with no proper divisors")
        assumption = refined.add_assumption("the set of primes is finite")
        external = refined.add_external("Euclid", "Elements IX.20")
        refined.claim("1.1", "prover")
        refined.refine(
            "1.1", "prover", "Let p1..pn be all primes",
            context=["def:prime", f"assume:{assumption.id}", f"ext:{external.id}"],
        )
        resolution = refined.load_state().resolve_context("1.1.1")
        assert resolution.is_complete
        assert [d.id for d in resolution.definitions] == [definition.id]


class TestAcceptance:
    """Tests for accept and the other epistemic actions."""

    def test_accept(self, refined):
        node = refined.accept("1.1", agent="verifier", note="ok")
        assert node.epistemic_state == EpistemicState.VALIDATED
        last = refined.ledger.read_all()[-1]
        assert last.event_type == EventType.NODE_VALIDATED
        assert last.payload == {"node_id": "1.1", "agent": "verifier", "note": "ok"}

    def test_validation_deps(self, refined):
        refined.refine("1", "prover", "needs 1.1 checked", validation_deps=["1.1"])
        with pytest.raises(ValidationDepsNotMetError) as exc:
            refined.accept("1.3")
        assert exc.value.pending == ["1.1"]
        refined.accept("1.1")
        refined.accept("1.3")

    def test_blocking_challenge(self, refined):
        challenge = refined.challenge("1.1", "gap", "why is the product new?",
                                      severity="critical", raised_by="verifier")
        with pytest.raises(BlockedByChallengeError):
            refined.accept("1.1")
        with pytest.raises(BlockedByChallengeError):
            refined.admit("1.1")
        resolved = refined.resolve_challenge(challenge.id, "added lemma")
        assert resolved.status == ChallengeStatus.RESOLVED
        refined.accept("1.1")

    def test_default_severity_blocks(self, refined):
        challenge = refined.challenge("1.2", "inference", "unclear")
        assert challenge.severity.value == "major"
        with pytest.raises(BlockedByChallengeError):
            refined.accept("1.2")
        refined.withdraw_challenge(challenge.id)
        refined.accept("1.2")

    def test_refute_supersedes(self, refined):
        challenge = refined.challenge("1.2", "gap", "wrong")
        refined.refute("1.2", agent="verifier")
        assert refined.all_challenges()[0].status == ChallengeStatus.SUPERSEDED
        assert challenge.id == refined.all_challenges()[0].id

    def test_reopen_and_archive(self, refined):
        refined.accept("1.1")
        assert refined.reopen("1.1").epistemic_state == EpistemicState.NEEDS_REFINEMENT
        assert refined.archive("1.1").epistemic_state == EpistemicState.ARCHIVED
        with pytest.raises(InvalidTransitionError):
            refined.accept("1.1")


class TestTaint:
    """Tests for taint through the service."""

    def test_reads_resolve_taint(self, refined):
        refined.admit("1.1")
        assert refined.get_node("1.1").taint_state == TaintState.SELF_ADMITTED
        assert refined.get_node("1.2").taint_state == TaintState.TAINTED

    def test_recompute_records_changes(self, refined):
        first = refined.recompute_taint()
        assert {c.new_taint for c in first} == {TaintState.CLEAN}
        refined.admit("1.1")
        changes = refined.recompute_taint()
        assert [c.to_dict() for c in changes] == [
            {"node_id": "1.1", "old_taint": "clean", "new_taint": "self_admitted"},
            {"node_id": "1.2", "old_taint": "clean", "new_taint": "tainted"},
        ]
        last = refined.ledger.read_all()[-1]
        assert last.event_type == EventType.TAINT_RECOMPUTED
        assert last.payload["changes"] == [c.to_dict() for c in changes]

    def test_recompute_without_changes_writes_nothing(self, refined):
        refined.recompute_taint()
        seq = refined.ledger.latest_seq()
        assert refined.recompute_taint() == []
        assert refined.ledger.latest_seq() == seq


class TestJobsAndStatus:
    """Tests for job discovery and status."""

    def test_jobs_flow(self, service):
        assert service.jobs().to_dict() == {"prover_jobs": ["1"], "verifier_jobs": []}
        service.claim("1", "prover")
        service.refine("1", "prover", "a")
        service.refine("1", "prover", "b")
        assert service.jobs().to_dict() == {"prover_jobs": ["1.1", "1.2"], "verifier_jobs": []}
        service.accept("1.1")
        service.admit("1.2")
        assert service.jobs().to_dict() == {"prover_jobs": [], "verifier_jobs": ["1"]}

    def test_status(self, refined):
        refined.challenge("1.2", "gap", "r", severity="minor")
        refined.accept("1.1")
        status = refined.status()
        assert status.total_nodes == 3
        assert status.workflow["claimed"] == 1
        assert status.epistemic == {
            "pending": 2, "validated": 1, "admitted": 0,
            "refuted": 0, "archived": 0, "needs_refinement": 0,
        }
        assert status.open_challenges == 1
        assert status.blocking_challenges == 0
        assert status.latest_seq == refined.ledger.latest_seq()
        assert not status.is_complete

    def test_complete(self, service):
        service.accept("1")
        status = service.status()
        assert status.is_complete
        assert status.to_dict()["root_state"] == "validated"


class TestConcurrency:
    """Tests for the sequence compare-and-set."""

    def test_stale_state_rejected(self, refined, config):
        stale = refined.load_state(resolve_taint=False)
        ProofService("proof-1", config=config).accept("1.1")
        refined.load_state = lambda resolve_taint=True: stale
        with pytest.raises(ConcurrentModificationError):
            refined.accept("1.2")
        del refined.load_state
        assert refined.get_node("1.2").epistemic_state == EpistemicState.PENDING

    def _stale_first(self, service, stale):
        """Make the next load return stale, later loads replay the ledger."""
        loads = []

        def load(resolve_taint=True):
            loads.append(resolve_taint)
            if len(loads) == 1:
                return stale
            return ProofService.load_state(service, resolve_taint)

        service.load_state = load
        return loads

    def test_claim_retries_after_unrelated_write(self, refined, config):
        stale = refined.load_state(resolve_taint=False)
        ProofService("proof-1", config=config).accept("1.1")
        loads = self._stale_first(refined, stale)
        node = refined.claim("1.2", "verifier")
        del refined.load_state
        assert len(loads) == 2
        assert node.claimed_by == "verifier"
        claims = [
            e for e in refined.ledger.read_all() if e.event_type == EventType.NODES_CLAIMED
        ]
        assert [e.payload["agent"] for e in claims] == ["prover", "verifier"]

    def test_claim_retry_sees_winner(self, refined, config):
        stale = refined.load_state(resolve_taint=False)
        ProofService("proof-1", config=config).claim("1.2", "rival")
        self._stale_first(refined, stale)
        with pytest.raises(AlreadyClaimedError):
            refined.claim("1.2", "verifier")
        del refined.load_state
        assert refined.get_node("1.2").claimed_by == "rival"


class TestSchemaProfileAndLimits:
    """Tests for schema profile enforcement and challenge limits via the service."""

    def test_restricted_profile_rejects_admit(self, config):
        profile = SchemaProfile.from_dict({
            "epistemic_states": ["pending", "validated", "refuted", "archived", "needs_refinement"],
        })
        svc = ProofService("strict", config=replace(config, schema_profile=profile))
        svc.init("P")
        seq = svc.ledger.latest_seq()
        with pytest.raises(InvalidStateError):
            svc.admit("1")
        assert svc.ledger.latest_seq() == seq
        assert svc.accept("1").epistemic_state == EpistemicState.VALIDATED

    def test_restricted_profile_rejects_refine(self, config):
        profile = SchemaProfile.from_dict({"node_types": ["claim", "qed"]})
        svc = ProofService("strict", config=replace(config, schema_profile=profile))
        svc.init("P")
        svc.claim("1", "prover")
        with pytest.raises(InvalidStateError):
            svc.refine("1", "prover", "Case n even", node_type="case")
        assert svc.get_node("1.1") is None

    def test_restricted_severity(self, config):
        profile = SchemaProfile.from_dict({"challenge_severities": ["critical", "major"]})
        svc = ProofService("strict", config=replace(config, schema_profile=profile))
        svc.init("P")
        with pytest.raises(InvalidStateError):
            svc.challenge("1", "gap", "typo", severity="note")
        assert svc.all_challenges() == []

    def test_challenge_limit(self, config):
        svc = ProofService("limited", config=replace(config, max_challenges_per_node=1))
        svc.init("P")
        first = svc.challenge("1", "gap", "first")
        with pytest.raises(ChallengeLimitExceededError):
            svc.challenge("1", "gap", "second")
        svc.withdraw_challenge(first.id)
        svc.challenge("1", "gap", "second")


class TestScopes:
    """Tests for assumption scopes through the service."""

    def test_scopes_survive_replay(self, service, config):
        service.claim("1", "prover")
        service.refine("1", "prover", "Suppose sqrt(2) = p/q in lowest terms",
                       node_type="local_assume", inference="local_assume")
        service.claim("1.1", "prover")
        service.refine("1.1", "prover", "Then p and q are both even",
                       scope=["assume:1.1"])
        assert service.status().open_scopes == 1

        service.refine("1.1", "prover", "Contradiction, so sqrt(2) is irrational",
                       node_type="local_discharge", inference="local_discharge")
        fresh = ProofService("proof-1", config=config)
        scopes = fresh.scopes()
        assert [str(s.node_id) for s in scopes] == ["1.1"]
        assert str(scopes[0].discharged_by) == "1.1.2"
        assert fresh.status().open_scopes == 0
        assert fresh.status().to_dict()["open_scopes"] == 0

    def test_discharge_without_scope(self, service):
        service.claim("1", "prover")
        seq = service.ledger.latest_seq()
        with pytest.raises(ScopeViolationError):
            service.refine("1", "prover", "Hence P",
                           node_type="local_discharge", inference="local_discharge")
        assert service.ledger.latest_seq() == seq


class TestInMemory:
    """Tests with the ledger disabled."""

    def test_no_files(self, tmp_path, config):
        svc = ProofService("memory", config=replace(config, ledger_enabled=False))
        assert svc.ledger is None
        assert not svc.is_initialized()
        svc.init("P")
        svc.claim("1", "prover")
        svc.refine("1", "prover", "a")
        svc.admit("1.1")
        assert svc.get_node("1.1").taint_state == TaintState.SELF_ADMITTED
        assert [c.node_id for c in svc.recompute_taint()] == []
        assert not (tmp_path / "proofs" / "memory").exists()
