"""
Taint rule for a single node.

Given the node and its direct dependencies (already resolved):
- self_admitted: the node itself is admitted
- tainted: some direct dependency is refuted, or is itself tainted or
  self_admitted
- clean: otherwise

Evaluated in dependency order, this is the transitive rule: a node is tainted
iff anything reachable through its dependencies is refuted or admitted.
"""

from typing import Iterable

from ..errors import TaintPropagationError
from ..node.node import Node
from ..schema.epistemic import EpistemicState
from ..schema.taint import CONTAGIOUS_TAINT, TaintState


def compute_taint(node: Node, dependencies: Iterable[Node]) -> TaintState:
    """
    Compute the taint of one node from its direct dependencies.

    Raises:
        TaintPropagationError: a dependency has not been resolved yet
    """
    if node.epistemic_state == EpistemicState.ADMITTED:
        return TaintState.SELF_ADMITTED
    tainted = False
    for dep in dependencies:
        if dep.taint_state == TaintState.UNRESOLVED:
            raise TaintPropagationError(
                node.id, f"dependency {dep.id} is still unresolved"
            )
        if dep.epistemic_state == EpistemicState.REFUTED or dep.taint_state in CONTAGIOUS_TAINT:
            tainted = True
    return TaintState.TAINTED if tainted else TaintState.CLEAN
