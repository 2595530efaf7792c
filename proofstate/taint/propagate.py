"""
Taint propagation to a fixed point.

Recomputation is explicit: mutations only mark nodes stale (taint
"unresolved"); TaintPropagator.recompute() resolves them. It runs under the
store lock, visits the stale nodes and everything depending on them in
topological order of the dependencies relation (ties broken by NodeID
order), and commits all results in one step.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Set

from ..errors import TaintPropagationError
from ..schema.taint import TaintState
from ..state.graph import DEPENDENCIES
from ..state.store import ProofState
from ..types.node_id import NodeID
from .compute import compute_taint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaintChange:
    """A node whose resolved taint differs from its last resolved value."""
    node_id: NodeID
    old_taint: TaintState
    new_taint: TaintState

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_id": str(self.node_id),
            "old_taint": self.old_taint.value,
            "new_taint": self.new_taint.value,
        }


class TaintPropagator:
    """
    Resolves stale taint in a ProofState.

    Usage:
        changes = TaintPropagator(state).recompute()
    """

    def __init__(self, state: ProofState):
        self.state = state

    def recompute(self, all_nodes: bool = False) -> List[TaintChange]:
        """
        Recompute taint until every node is resolved.

        Args:
            all_nodes: Recompute the whole tree instead of the stale set

        Returns:
            TaintChange records in processing order. A node resolved for the
            first time reports old_taint "unresolved".

        Raises:
            CyclicDependencyError: the dependencies relation has a cycle
            TaintPropagationError: a dependency could not be resolved first
        """
        state = self.state
        with state.lock:
            graph = state.dependency_graph
            if all_nodes:
                targets: Set[NodeID] = {n.id for n in state.all_nodes()}
            else:
                targets = set()
                for node_id in state.taint_dirty:
                    targets.add(node_id)
                    targets |= graph.transitive_dependents(node_id, DEPENDENCIES)
            if not targets:
                return []

            order = graph.topological_order(targets, DEPENDENCIES)
            nodes = {n.id: n for n in state.all_nodes()}
            for node_id in targets:
                nodes[node_id].taint_state = TaintState.UNRESOLVED

            computed: Dict[NodeID, TaintState] = {}
            changes: List[TaintChange] = []
            for node_id in order:
                node = nodes[node_id]
                deps = [nodes[d] for d in node.dependencies]
                new_taint = compute_taint(node, deps)
                node.taint_state = new_taint
                computed[node_id] = new_taint
                old_taint = state.last_resolved_taint(node_id) or TaintState.UNRESOLVED
                if old_taint != new_taint:
                    changes.append(TaintChange(node_id, old_taint, new_taint))
                    logger.debug(f"[TAINT] {node_id}: {old_taint.value} -> {new_taint.value}")

            missing = targets - set(computed)
            if missing:
                raise TaintPropagationError(min(missing), "node not reached in dependency order")

            state.commit_taint(computed)
            logger.debug(f"[TAINT] Recomputed {len(computed)} nodes, {len(changes)} changed")
            return changes


def ensure_resolved(state: ProofState) -> List[TaintChange]:
    """Resolve stale taint before a read that depends on it."""
    with state.lock:
        if not state.needs_taint_recompute:
            return []
        return TaintPropagator(state).recompute()
