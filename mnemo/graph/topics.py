"""
Topic tree.

Topics form a single tree; each topic keeps a relative position among its
siblings so listings and due-item tie-breaks are stable.
"""

from __future__ import annotations

from collections.abc import Iterable

from mnemo.core.errors import ItemNotFound, TopicCycle
from mnemo.core.items import Topic


class TopicTree:
    """In-memory view of the topic hierarchy."""

    def __init__(self) -> None:
        self._topics: dict[int, Topic] = {}

    @classmethod
    def from_topics(cls, topics: Iterable[Topic]) -> TopicTree:
        tree = cls()
        for topic in topics:
            tree.put(topic)
        return tree

    def __contains__(self, topic_id: object) -> bool:
        return topic_id in self._topics

    def __len__(self) -> int:
        return len(self._topics)

    def put(self, topic: Topic) -> None:
        """Insert or replace a stored topic (must carry an id)."""
        if topic.id is None:
            raise ValueError("Topic must be saved before it is added to the tree")
        self._topics[topic.id] = topic

    def get(self, topic_id: int) -> Topic:
        try:
            return self._topics[topic_id]
        except KeyError:
            raise ItemNotFound("Topic", topic_id) from None

    def roots(self) -> list[Topic]:
        return self.children(None)

    def children(self, parent_id: int | None) -> list[Topic]:
        """Direct children ordered by relative position, then id."""
        kids = [t for t in self._topics.values() if t.parent_id == parent_id]
        return sorted(kids, key=lambda t: (t.relpos, t.id))

    def next_relpos(self, parent_id: int | None) -> int:
        kids = self.children(parent_id)
        return kids[-1].relpos + 1 if kids else 0

    def relpos(self, topic_id: int | None) -> int | None:
        """Relative position of a topic, or None for unknown/missing topics."""
        if topic_id is None or topic_id not in self._topics:
            return None
        return self._topics[topic_id].relpos

    def ancestors(self, topic_id: int) -> list[Topic]:
        """Parent chain from the topic's parent up to its root."""
        chain = []
        current = self.get(topic_id).parent_id
        while current is not None:
            topic = self.get(current)
            chain.append(topic)
            current = topic.parent_id
        return chain

    def path(self, topic_id: int) -> str:
        """Slash-joined names from the root down, e.g. "Networking/OSI"."""
        names = [t.name for t in reversed(self.ancestors(topic_id))]
        names.append(self.get(topic_id).name)
        return "/".join(names)

    def check_move(self, topic_id: int, new_parent_id: int | None) -> None:
        """
        Raises:
            TopicCycle: new_parent_id is the topic itself or one of its descendants
        """
        self.get(topic_id)
        if new_parent_id is None:
            return
        if new_parent_id == topic_id:
            raise TopicCycle(topic_id, new_parent_id)
        if any(t.id == topic_id for t in self.ancestors(new_parent_id)):
            raise TopicCycle(topic_id, new_parent_id)

    def walk(self, parent_id: int | None = None, depth: int = 0) -> Iterable[tuple[int, Topic]]:
        """Depth-first (depth, topic) pairs in display order."""
        for topic in self.children(parent_id):
            yield depth, topic
            yield from self.walk(topic.id, depth + 1)
