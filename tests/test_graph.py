"""
Tests for the dependency graph.

Tests:
- Edge bookkeeping per relation
- Cycle detection
- Deterministic topological order
"""

import pytest

from proofstate.errors import CyclicDependencyError, NodeNotFoundError
from proofstate.state import DEPENDENCIES, VALIDATION_DEPS, DependencyGraph
from proofstate.types import NodeID


def _id(text):
    return NodeID.parse(text)


@pytest.fixture
def graph():
    g = DependencyGraph()
    g.add_node(_id("1"))
    g.add_node(_id("1.1"))
    g.add_node(_id("1.2"), dependencies=[_id("1.1")])
    g.add_node(_id("1.3"), dependencies=[_id("1.2")], validation_deps=[_id("1.1")])
    return g


class TestEdges:
    """Tests for relation bookkeeping."""

    def test_relations_are_separate(self, graph):
        assert graph.dependencies_of(_id("1.3")) == [_id("1.2")]
        assert graph.dependencies_of(_id("1.3"), VALIDATION_DEPS) == [_id("1.1")]
        assert graph.direct_dependents(_id("1.1")) == [_id("1.2")]
        assert graph.direct_dependents(_id("1.1"), VALIDATION_DEPS) == [_id("1.3")]

    def test_transitive_dependents(self, graph):
        assert graph.transitive_dependents(_id("1.1")) == {_id("1.2"), _id("1.3")}
        assert graph.transitive_dependents(_id("1.3")) == set()

    def test_unknown_node(self, graph):
        with pytest.raises(NodeNotFoundError):
            graph.transitive_dependents(_id("2"))

    def test_unknown_relation(self, graph):
        with pytest.raises(ValueError):
            graph.dependencies_of(_id("1"), "citations")

    def test_len_and_contains(self, graph):
        assert len(graph) == 4
        assert _id("1.2") in graph
        assert _id("1.9") not in graph


class TestCycles:
    """Tests for cycle detection."""

    def test_self_reference(self, graph):
        assert graph.find_cycle(_id("1.4"), [_id("1.4")]) == [_id("1.4"), _id("1.4")]

    def test_new_node_cannot_close_cycle(self, graph):
        assert graph.find_cycle(_id("1.4"), [_id("1.3")]) is None

    def test_existing_node_cycle(self, graph):
        # 1.1 -> 1.2 -> 1.3; making 1.1 depend on 1.3 closes the loop
        cycle = graph.find_cycle(_id("1.1"), [_id("1.3")])
        assert cycle == [_id("1.1"), _id("1.2"), _id("1.3"), _id("1.1")]
        with pytest.raises(CyclicDependencyError) as exc:
            graph.check_edges(_id("1.1"), [_id("1.3")])
        assert exc.value.cycle == ["1.1", "1.2", "1.3", "1.1"]
        assert exc.value.relation == DEPENDENCIES

    def test_relation_scoped(self, graph):
        assert graph.find_cycle(_id("1.1"), [_id("1.3")], VALIDATION_DEPS) == [
            _id("1.1"), _id("1.3"), _id("1.1"),
        ]
        assert graph.find_cycle(_id("1.2"), [_id("1.3")], VALIDATION_DEPS) is None
        assert graph.is_acyclic()


class TestTopologicalOrder:
    """Tests for dependency-first ordering."""

    def test_full_order(self, graph):
        assert graph.topological_order() == [_id("1"), _id("1.1"), _id("1.2"), _id("1.3")]

    def test_ties_use_node_id_order(self):
        g = DependencyGraph()
        for text in ("1.10", "1.2", "1", "1.1"):
            g.add_node(_id(text))
        assert [str(n) for n in g.topological_order()] == ["1", "1.1", "1.2", "1.10"]

    def test_dependency_beats_id_order(self):
        g = DependencyGraph()
        g.add_node(_id("1.2"))
        g.add_node(_id("1.1"), dependencies=[_id("1.2")])
        assert [str(n) for n in g.topological_order()] == ["1.2", "1.1"]

    def test_subset(self, graph):
        assert graph.topological_order([_id("1.3"), _id("1.2")]) == [_id("1.2"), _id("1.3")]
