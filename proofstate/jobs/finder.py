"""
Job discovery.

Stateless scan of a node snapshot into role-partitioned work queues:
- prover job: available and pending (needs refinement into children)
- verifier job: claimed, pending, and every direct child validated or
  admitted (ready for a verdict)

Results are unordered; JobResult.sorted() applies the canonical NodeID order.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Sequence

from ..node.node import Node
from ..schema.epistemic import POSITIVE_TERMINAL_STATES, EpistemicState
from ..schema.workflow import WorkflowState
from ..state.store import ProofState
from ..taint.propagate import ensure_resolved
from ..types.node_id import NodeID


@dataclass
class JobResult:
    """Work available to each agent role."""
    prover_jobs: List[Node] = field(default_factory=list)
    verifier_jobs: List[Node] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.prover_jobs and not self.verifier_jobs

    @property
    def total_count(self) -> int:
        return len(self.prover_jobs) + len(self.verifier_jobs)

    def sorted(self) -> "JobResult":
        """Copy with both queues in NodeID order."""
        return JobResult(
            prover_jobs=sorted(self.prover_jobs, key=lambda n: n.id),
            verifier_jobs=sorted(self.verifier_jobs, key=lambda n: n.id),
        )

    def to_dict(self) -> Dict[str, Any]:
        ordered = self.sorted()
        return {
            "prover_jobs": [str(n.id) for n in ordered.prover_jobs],
            "verifier_jobs": [str(n.id) for n in ordered.verifier_jobs],
        }


def _children_index(nodes: Sequence[Node]) -> Dict[NodeID, List[Node]]:
    index: Dict[NodeID, List[Node]] = {}
    for node in nodes:
        parent = node.id.parent()
        if parent is not None:
            index.setdefault(parent, []).append(node)
    return index


def is_prover_job(node: Node) -> bool:
    return (
        node.workflow_state == WorkflowState.AVAILABLE
        and node.epistemic_state == EpistemicState.PENDING
    )


def is_verifier_job(node: Node, children: Iterable[Node]) -> bool:
    return (
        node.workflow_state == WorkflowState.CLAIMED
        and node.epistemic_state == EpistemicState.PENDING
        and all(c.epistemic_state in POSITIVE_TERMINAL_STATES for c in children)
    )


def find_prover_jobs(nodes: Iterable[Node]) -> List[Node]:
    return [n for n in nodes if is_prover_job(n)]


def find_verifier_jobs(nodes: Iterable[Node]) -> List[Node]:
    snapshot = list(nodes)
    children = _children_index(snapshot)
    return [n for n in snapshot if is_verifier_job(n, children.get(n.id, ()))]


def find_jobs(nodes: Iterable[Node]) -> JobResult:
    """Partition a node snapshot into prover and verifier jobs."""
    snapshot = list(nodes)
    return JobResult(
        prover_jobs=find_prover_jobs(snapshot),
        verifier_jobs=find_verifier_jobs(snapshot),
    )


def find_jobs_in_state(state: ProofState) -> JobResult:
    """Resolve stale taint, then scan one consistent snapshot of the store."""
    with state.lock:
        ensure_resolved(state)
        nodes = state.all_nodes()
    return find_jobs(nodes)
