"""
Dependency Graph: prerequisite edges between learning items.

An edge (dependent, dependency) means the dependent may not be studied
until the dependency is RESOLVED. The edge set is kept acyclic: every
insertion first searches for a path from the dependency back to the
dependent.

The graph is an in-memory view. It is rebuilt from the store at session
start (from_edges) and the scheduler keeps it in step with every
persisted mutation.
"""

from __future__ import annotations

from collections import defaultdict, deque
from collections.abc import Callable, Iterable, Iterator

from loguru import logger

from mnemo.core.errors import CycleDetected, SelfDependency
from mnemo.core.items import DependencyEdge, ItemStatus

StatusLookup = Callable[[int], ItemStatus]


class DependencyGraph:
    """Adjacency view of the prerequisite DAG."""

    def __init__(self) -> None:
        self._dependencies: dict[int, set[int]] = defaultdict(set)
        self._dependents: dict[int, set[int]] = defaultdict(set)

    @classmethod
    def from_edges(cls, edges: Iterable[DependencyEdge]) -> DependencyGraph:
        """
        Build a graph from stored edges.

        Raises:
            CycleDetected / SelfDependency: the stored edges are not a DAG
        """
        graph = cls()
        count = 0
        for edge in edges:
            graph.add_edge(edge.dependent, edge.dependency)
            count += 1
        logger.debug(f"Dependency graph built from {count} edges")
        return graph

    def __contains__(self, edge: DependencyEdge) -> bool:
        return edge.dependency in self._dependencies.get(edge.dependent, ())

    def __len__(self) -> int:
        return sum(len(deps) for deps in self._dependencies.values())

    def edges(self) -> Iterator[DependencyEdge]:
        for dependent in sorted(self._dependencies):
            for dependency in sorted(self._dependencies[dependent]):
                yield DependencyEdge(dependent=dependent, dependency=dependency)

    def _reaches(self, start: int, target: int) -> bool:
        """Breadth-first search along dependency edges from start to target."""
        seen = {start}
        queue = deque([start])
        while queue:
            node = queue.popleft()
            if node == target:
                return True
            for nxt in self._dependencies.get(node, ()):
                if nxt not in seen:
                    seen.add(nxt)
                    queue.append(nxt)
        return False

    def check_edge(self, dependent: int, dependency: int) -> None:
        """
        Validate an edge without inserting it.

        Raises:
            SelfDependency: dependent == dependency
            CycleDetected: dependency already (transitively) depends on dependent
        """
        if dependent == dependency:
            raise SelfDependency(dependent)
        if self._reaches(dependency, dependent):
            raise CycleDetected(dependent, dependency)

    def add_edge(self, dependent: int, dependency: int) -> DependencyEdge:
        """
        Insert an edge, keeping the graph acyclic.

        Adding an edge that already exists is a no-op.
        """
        self.check_edge(dependent, dependency)
        self._dependencies[dependent].add(dependency)
        self._dependents[dependency].add(dependent)
        return DependencyEdge(dependent=dependent, dependency=dependency)

    def remove_edge(self, dependent: int, dependency: int) -> None:
        """Remove an edge; missing edges are ignored."""
        self._dependencies.get(dependent, set()).discard(dependency)
        self._dependents.get(dependency, set()).discard(dependent)

    def dependencies_of(self, item_id: int) -> set[int]:
        """Direct prerequisites of an item."""
        return set(self._dependencies.get(item_id, ()))

    def dependents_of(self, item_id: int) -> set[int]:
        """Items that directly depend on this one."""
        return set(self._dependents.get(item_id, ()))

    def is_unlocked(self, item_id: int, status_of: StatusLookup) -> bool:
        """
        True iff every direct dependency is RESOLVED.

        Only direct dependencies are looked up: an item cannot reach
        RESOLVED while any of its own dependencies is unresolved, so
        resolution already holds transitively.
        """
        return all(
            status_of(dep) == ItemStatus.RESOLVED
            for dep in self._dependencies.get(item_id, ())
        )
