"""Unit tests for the prerequisite graph."""

import pytest

from mnemo.core.errors import CycleDetected, SelfDependency
from mnemo.core.items import DependencyEdge, ItemStatus
from mnemo.graph.dependency_graph import DependencyGraph


def statuses(**by_id):
    """Status lookup from keyword args like i1="resolved"."""
    table = {int(k[1:]): ItemStatus(v) for k, v in by_id.items()}
    return table.__getitem__


class TestEdges:
    def test_add_and_query(self):
        graph = DependencyGraph()
        graph.add_edge(2, 1)
        graph.add_edge(3, 1)

        assert graph.dependencies_of(2) == {1}
        assert graph.dependents_of(1) == {2, 3}
        assert DependencyEdge(2, 1) in graph
        assert DependencyEdge(1, 2) not in graph
        assert len(graph) == 2

    def test_re_adding_is_noop(self):
        graph = DependencyGraph()
        graph.add_edge(2, 1)
        graph.add_edge(2, 1)
        assert len(graph) == 1

    def test_remove_is_idempotent(self):
        graph = DependencyGraph()
        graph.add_edge(2, 1)
        graph.remove_edge(2, 1)
        graph.remove_edge(2, 1)
        graph.remove_edge(7, 8)

        assert len(graph) == 0
        assert graph.dependents_of(1) == set()

    def test_edges_sorted(self):
        graph = DependencyGraph.from_edges([DependencyEdge(3, 1), DependencyEdge(2, 1), DependencyEdge(3, 2)])
        assert list(graph.edges()) == [DependencyEdge(2, 1), DependencyEdge(3, 1), DependencyEdge(3, 2)]


class TestAcyclicity:
    def test_self_dependency_rejected(self):
        with pytest.raises(SelfDependency):
            DependencyGraph().add_edge(4, 4)

    def test_direct_cycle_rejected(self):
        graph = DependencyGraph()
        graph.add_edge(2, 1)
        with pytest.raises(CycleDetected):
            graph.add_edge(1, 2)

    def test_transitive_cycle_rejected_and_graph_unchanged(self):
        graph = DependencyGraph()
        graph.add_edge(3, 2)
        graph.add_edge(2, 1)

        with pytest.raises(CycleDetected) as exc:
            graph.add_edge(1, 3)

        assert exc.value.dependent == 1
        assert exc.value.dependency == 3
        assert len(graph) == 2
        assert graph.dependencies_of(1) == set()

    def test_diamond_allowed(self):
        graph = DependencyGraph()
        graph.add_edge(4, 2)
        graph.add_edge(4, 3)
        graph.add_edge(2, 1)
        graph.add_edge(3, 1)
        assert len(graph) == 4

    def test_from_edges_rejects_cycle(self):
        with pytest.raises(CycleDetected):
            DependencyGraph.from_edges([DependencyEdge(1, 2), DependencyEdge(2, 1)])


class TestUnlocked:
    def test_no_dependencies_is_unlocked(self):
        assert DependencyGraph().is_unlocked(1, statuses())

    def test_unresolved_dependency_locks(self):
        graph = DependencyGraph()
        graph.add_edge(2, 1)
        assert not graph.is_unlocked(2, statuses(i1="complete"))

    def test_all_resolved_unlocks(self):
        graph = DependencyGraph()
        graph.add_edge(3, 1)
        graph.add_edge(3, 2)

        assert graph.is_unlocked(3, statuses(i1="resolved", i2="resolved"))
        assert not graph.is_unlocked(3, statuses(i1="resolved", i2="active"))
