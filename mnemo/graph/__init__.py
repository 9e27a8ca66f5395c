"""Graph views: prerequisite DAG and topic tree."""

from mnemo.graph.dependency_graph import DependencyGraph
from mnemo.graph.topics import TopicTree

__all__ = ["DependencyGraph", "TopicTree"]
