"""
Tests for job discovery.

Tests:
- Prover / verifier partition
- Deterministic ordering
- Scanning a live store
"""

from proofstate.jobs import (
    JobResult,
    find_jobs,
    find_jobs_in_state,
    is_prover_job,
    is_verifier_job,
)
from proofstate.node import Node
from proofstate.schema import EpistemicState, WorkflowState


def _node(node_id, workflow="available", epistemic="pending"):
    return Node(
        id=node_id,
        node_type="claim",
        statement=f"step {node_id}",
        inference="modus_ponens",
        workflow_state=workflow,
        epistemic_state=epistemic,
    )


class TestFindJobs:
    """Tests for the pure scan."""

    def test_three_node_partition(self):
        nodes = [
            _node("1"),
            _node("2", workflow="claimed"),
            _node("2.1", epistemic="validated"),
            _node("2.2", epistemic="admitted"),
            _node("3", workflow="claimed"),
            _node("3.1", epistemic="validated"),
            _node("3.2", workflow="claimed"),
        ]
        result = find_jobs(nodes)
        assert [str(n.id) for n in result.prover_jobs] == ["1"]
        assert sorted(str(n.id) for n in result.verifier_jobs) == ["2", "3.2"]

    def test_childless_claimed_pending_is_verifier_job(self):
        assert is_verifier_job(_node("1", workflow="claimed"), [])

    def test_not_pending(self):
        assert not is_prover_job(_node("1", epistemic="validated"))
        assert not is_verifier_job(_node("1", workflow="claimed", epistemic="refuted"), [])

    def test_blocked_is_no_job(self):
        node = _node("1", workflow="blocked")
        assert not is_prover_job(node)
        assert not is_verifier_job(node, [])

    def test_refuted_child_blocks_verifier(self):
        parent = _node("1", workflow="claimed")
        assert not is_verifier_job(parent, [_node("1.1", epistemic="refuted")])

    def test_input_not_mutated(self):
        nodes = [_node("1"), _node("1.1", workflow="claimed")]
        before = [(n.workflow_state, n.epistemic_state) for n in nodes]
        find_jobs(nodes)
        assert [(n.workflow_state, n.epistemic_state) for n in nodes] == before


class TestOrdering:
    """Tests for canonical NodeID ordering."""

    def test_sorted_is_numeric(self):
        nodes = [_node("1.10"), _node("1.2"), _node("1"), _node("1.1")]
        result = find_jobs(nodes).sorted()
        assert [str(n.id) for n in result.prover_jobs] == ["1", "1.1", "1.2", "1.10"]

    def test_repeatable(self):
        nodes = [_node(i) for i in ("3", "1.2", "2", "1.10", "1")]
        first = find_jobs(nodes).to_dict()
        second = find_jobs(list(reversed(nodes))).to_dict()
        assert first == second
        assert first["prover_jobs"] == ["1", "1.2", "1.10", "2", "3"]

    def test_empty(self):
        result = JobResult()
        assert result.is_empty
        assert result.total_count == 0


class TestFindJobsInState:
    """Tests for scanning a store."""

    def test_tree(self, tree):
        tree.claim("1", "prover-a")
        result = find_jobs_in_state(tree).sorted()
        assert [str(n.id) for n in result.prover_jobs] == ["1.1", "1.2", "1.3"]
        assert result.verifier_jobs == []

        for child in ("1.1", "1.2", "1.3"):
            tree.apply_epistemic_transition(child, "validated")
        result = find_jobs_in_state(tree)
        assert [str(n.id) for n in result.verifier_jobs] == ["1"]
        assert result.prover_jobs == []
        assert result.verifier_jobs[0].workflow_state == WorkflowState.CLAIMED
        assert result.verifier_jobs[0].epistemic_state == EpistemicState.PENDING

    def test_resolves_taint(self, tree):
        find_jobs_in_state(tree)
        assert not tree.needs_taint_recompute
