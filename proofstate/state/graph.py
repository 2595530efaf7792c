"""
Dependency graph over node IDs.

Two directed graphs are kept, one per relation:
- dependencies: edge dep -> node (node relies on dep's content; drives taint)
- validation_deps: edge dep -> node (dep must be accepted before node)

Edges point from the dependency to the dependent, so a topological order
lists every dependency before the nodes that rely on it. Neither relation
may contain a cycle; new edges are checked before they are added.
"""

import logging
from typing import Dict, Iterable, List, Optional, Set

import networkx as nx

from ..errors import CyclicDependencyError, NodeNotFoundError
from ..types.node_id import NodeID

logger = logging.getLogger(__name__)

DEPENDENCIES = "dependencies"
VALIDATION_DEPS = "validation_deps"
RELATIONS = (DEPENDENCIES, VALIDATION_DEPS)


def _node_key(node_id: NodeID):
    return node_id.segments


class DependencyGraph:
    """
    Acyclic dependency relations between proof nodes.

    Not thread-safe by itself; the state store serialises access.
    """

    def __init__(self):
        self._graphs: Dict[str, nx.DiGraph] = {
            relation: nx.DiGraph() for relation in RELATIONS
        }

    def _graph(self, relation: str) -> nx.DiGraph:
        try:
            return self._graphs[relation]
        except KeyError:
            raise ValueError(f"unknown dependency relation: {relation}") from None

    def __contains__(self, node_id: NodeID) -> bool:
        return node_id in self._graphs[DEPENDENCIES]

    def __len__(self) -> int:
        return self._graphs[DEPENDENCIES].number_of_nodes()

    def find_cycle(
        self,
        node_id: NodeID,
        deps: Iterable[NodeID],
        relation: str = DEPENDENCIES,
    ) -> Optional[List[NodeID]]:
        """
        Cycle that edges deps -> node_id would close, or None.

        The returned path starts and ends at node_id.
        """
        graph = self._graph(relation)
        for dep in deps:
            if dep == node_id:
                return [node_id, node_id]
            if node_id in graph and dep in graph and nx.has_path(graph, node_id, dep):
                return list(nx.shortest_path(graph, node_id, dep)) + [node_id]
        return None

    def check_edges(
        self,
        node_id: NodeID,
        deps: Iterable[NodeID],
        relation: str = DEPENDENCIES,
    ) -> None:
        """
        Raises:
            CyclicDependencyError: the edges would close a cycle
        """
        cycle = self.find_cycle(node_id, list(deps), relation)
        if cycle is not None:
            raise CyclicDependencyError(cycle, relation)

    def add_node(
        self,
        node_id: NodeID,
        dependencies: Iterable[NodeID] = (),
        validation_deps: Iterable[NodeID] = (),
    ) -> None:
        """Add a node and its edges. Callers check for cycles first."""
        for relation, deps in ((DEPENDENCIES, dependencies), (VALIDATION_DEPS, validation_deps)):
            graph = self._graphs[relation]
            graph.add_node(node_id)
            for dep in deps:
                graph.add_edge(dep, node_id)

    def dependencies_of(self, node_id: NodeID, relation: str = DEPENDENCIES) -> List[NodeID]:
        graph = self._graph(relation)
        if node_id not in graph:
            raise NodeNotFoundError(node_id, "dependency graph")
        return sorted(graph.predecessors(node_id))

    def direct_dependents(self, node_id: NodeID, relation: str = DEPENDENCIES) -> List[NodeID]:
        graph = self._graph(relation)
        if node_id not in graph:
            raise NodeNotFoundError(node_id, "dependency graph")
        return sorted(graph.successors(node_id))

    def transitive_dependents(self, node_id: NodeID, relation: str = DEPENDENCIES) -> Set[NodeID]:
        """Every node that relies on node_id, directly or indirectly."""
        graph = self._graph(relation)
        if node_id not in graph:
            raise NodeNotFoundError(node_id, "dependency graph")
        return set(nx.descendants(graph, node_id))

    def topological_order(
        self,
        node_ids: Optional[Iterable[NodeID]] = None,
        relation: str = DEPENDENCIES,
    ) -> List[NodeID]:
        """
        Dependencies-first order, ties broken by NodeID order.

        Args:
            node_ids: Restrict to this subset (edges outside it are ignored)

        Raises:
            CyclicDependencyError: the relation contains a cycle
        """
        graph = self._graph(relation)
        if node_ids is not None:
            graph = graph.subgraph(node_ids)
        try:
            return list(nx.lexicographical_topological_sort(graph, key=_node_key))
        except nx.NetworkXUnfeasible:
            cycle = [edge[0] for edge in nx.find_cycle(graph)]
            logger.error(f"[PROOF_STATE] Cycle found in {relation}: {cycle}")
            raise CyclicDependencyError(cycle + cycle[:1], relation) from None

    def is_acyclic(self, relation: str = DEPENDENCIES) -> bool:
        return nx.is_directed_acyclic_graph(self._graph(relation))
