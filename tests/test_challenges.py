"""
Tests for the challenge lifecycle manager.

Tests:
- Raising challenges (validation, default severity, generated IDs)
- Schema profile and open-challenge limits
- Resolve / withdraw lifecycle
- Severity-based blocking
"""

import pytest

from proofstate.challenges import CHALLENGE_ID_PREFIX, ChallengeManager, is_blocking_severity
from proofstate.config import EngineConfig
from proofstate.errors import (
    BlockedByChallengeError,
    ChallengeLimitExceededError,
    InvalidInputError,
    InvalidStateError,
    InvalidTransitionError,
    NodeNotFoundError,
)
from proofstate.schema import ChallengeSeverity, ChallengeStatus, ChallengeTarget
from proofstate.state import ProofState


@pytest.fixture
def manager(tree):
    return ChallengeManager(tree)


class TestRaise:
    """Tests for raise_challenge."""

    def test_defaults(self, manager):
        challenge = manager.raise_challenge("1.2", "gap", "step skips a case")
        assert challenge.id.startswith(f"{CHALLENGE_ID_PREFIX}-")
        assert challenge.severity == ChallengeSeverity.MAJOR
        assert challenge.target == ChallengeTarget.GAP
        assert challenge.status == ChallengeStatus.OPEN
        assert manager.state.get_challenge(challenge.id) is not None

    def test_configured_default_severity(self, tree):
        tree.config = EngineConfig(default_severity="minor")
        challenge = ChallengeManager(tree).raise_challenge("1.2", "gap", "nit")
        assert challenge.severity == ChallengeSeverity.MINOR

    def test_explicit_id_and_agent(self, manager):
        challenge = manager.raise_challenge(
            "1.1", "domain", "division by zero", severity="critical",
            raised_by="verifier-1", challenge_id="ch-1",
        )
        assert challenge.id == "ch-1"
        assert challenge.raised_by == "verifier-1"

    def test_generated_ids_unique(self, manager):
        ids = {manager.raise_challenge("1.1", "gap", "r").id for _ in range(20)}
        assert len(ids) == 20

    def test_unknown_node(self, manager):
        with pytest.raises(NodeNotFoundError):
            manager.raise_challenge("1.9", "gap", "r")

    def test_profile_excludes_target_and_severity(self, tree):
        config = EngineConfig(schema_profile={
            "challenge_targets": ["gap", "statement"],
            "challenge_severities": ["critical", "major", "minor"],
        })
        manager = ChallengeManager(tree, config)
        with pytest.raises(InvalidStateError):
            manager.build_challenge("1.1", "domain", "r")
        with pytest.raises(InvalidStateError):
            manager.build_challenge("1.1", "gap", "r", severity="note")
        assert manager.build_challenge("1.1", "gap", "r").severity == ChallengeSeverity.MAJOR
        assert tree.all_challenges() == []

    def test_open_challenge_limit(self, tree):
        tree.config = EngineConfig(max_challenges_per_node=2)
        manager = ChallengeManager(tree)
        manager.raise_challenge("1.1", "gap", "a")
        manager.raise_challenge("1.1", "gap", "b")
        with pytest.raises(ChallengeLimitExceededError):
            manager.raise_challenge("1.1", "gap", "c")
        manager.raise_challenge("1.2", "gap", "c")

    def test_empty_reason(self, manager):
        with pytest.raises(InvalidInputError):
            manager.raise_challenge("1.1", "gap", "  ")

    def test_unknown_target(self, manager):
        with pytest.raises(InvalidStateError):
            manager.raise_challenge("1.1", "vibes", "r")

    def test_unknown_severity(self, manager):
        with pytest.raises(InvalidStateError):
            manager.raise_challenge("1.1", "gap", "r", severity="blocker")
        assert manager.open_challenges() == []


class TestLifecycle:
    """Tests for resolve and withdraw."""

    def test_resolve(self, manager):
        challenge = manager.raise_challenge("1.1", "gap", "r")
        resolved = manager.resolve(challenge.id, "added lemma 1.1.1")
        assert resolved.status == ChallengeStatus.RESOLVED
        assert resolved.resolution == "added lemma 1.1.1"
        assert resolved.resolved_at is not None

    def test_resolve_needs_text(self, manager):
        challenge = manager.raise_challenge("1.1", "gap", "r")
        with pytest.raises(InvalidInputError):
            manager.resolve(challenge.id, "")
        assert manager.state.get_challenge(challenge.id).is_open

    def test_terminal_statuses(self, manager):
        challenge = manager.raise_challenge("1.1", "gap", "r")
        manager.withdraw(challenge.id)
        with pytest.raises(InvalidTransitionError):
            manager.resolve(challenge.id, "too late")
        with pytest.raises(InvalidTransitionError):
            manager.withdraw(challenge.id)

    def test_open_challenges_sorted(self, manager):
        manager.raise_challenge("1.2", "gap", "r", challenge_id="ch-b")
        manager.raise_challenge("1.1", "gap", "r", challenge_id="ch-c")
        manager.raise_challenge("1.2", "scope", "r", challenge_id="ch-a")
        assert [c.id for c in manager.open_challenges()] == ["ch-a", "ch-b", "ch-c"]
        assert [c.id for c in manager.open_challenges("1.2")] == ["ch-a", "ch-b"]


class TestBlocking:
    """Tests for severity-based acceptance blocking."""

    @pytest.mark.parametrize("severity,blocks", [
        ("critical", True),
        ("major", True),
        ("minor", False),
        ("note", False),
    ])
    def test_severity(self, manager, severity, blocks):
        manager.raise_challenge("1.1", "gap", "r", severity=severity)
        assert manager.is_blocked("1.1") is blocks
        assert is_blocking_severity(severity) is blocks

    def test_check_acceptance(self, manager):
        manager.check_acceptance("1.1")
        manager.raise_challenge("1.1", "gap", "r", severity="critical", challenge_id="ch-1")
        with pytest.raises(BlockedByChallengeError) as exc:
            manager.check_acceptance("1.1")
        assert exc.value.challenge_ids == ["ch-1"]
        manager.resolve("ch-1", "fixed")
        manager.check_acceptance("1.1")

    def test_blocking_resolves_taint_first(self, manager):
        assert manager.state.needs_taint_recompute
        manager.blocking_challenges("1.1")
        assert not manager.state.needs_taint_recompute

    def test_blocks_other_node_only(self, manager):
        manager.raise_challenge("1.1", "gap", "r", severity="critical")
        assert not manager.is_blocked("1.2")


def test_manager_uses_state_config(config):
    state = ProofState(config)
    assert ChallengeManager(state).config is config
