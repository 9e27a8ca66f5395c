"""Topic management on top of the scheduler's topic tree."""

from __future__ import annotations

from dataclasses import replace

from loguru import logger

from mnemo.core.errors import ItemNotFound
from mnemo.core.items import Topic
from mnemo.db.store import ItemStore
from mnemo.graph.topics import TopicTree


class TopicService:
    """Creates and moves topics, persisting each change before updating the tree."""

    def __init__(self, store: ItemStore, tree: TopicTree):
        self.store = store
        self.tree = tree

    def add_topic(self, name: str, parent_id: int | None = None, relpos: int | None = None) -> Topic:
        """
        Add a topic under `parent_id` (a root topic if None).

        Without `relpos` the topic goes after its last sibling.
        """
        if parent_id is not None and parent_id not in self.tree:
            raise ItemNotFound("Topic", parent_id)
        if relpos is None:
            relpos = self.tree.next_relpos(parent_id)
        topic = self.store.save_topic(Topic(name=name, parent_id=parent_id, relpos=relpos))
        self.tree.put(topic)
        logger.info(f"Added topic {topic.id} ({self.tree.path(topic.id)})")
        return topic

    def move_topic(self, topic_id: int, new_parent_id: int | None, relpos: int | None = None) -> Topic:
        """
        Re-parent a topic.

        Raises:
            TopicCycle: the new parent is the topic or one of its descendants
        """
        self.tree.check_move(topic_id, new_parent_id)
        if relpos is None:
            relpos = self.tree.next_relpos(new_parent_id)
        moved = replace(self.tree.get(topic_id), parent_id=new_parent_id, relpos=relpos)
        moved = self.store.save_topic(moved)
        self.tree.put(moved)
        return moved

    def rename_topic(self, topic_id: int, name: str) -> Topic:
        renamed = self.store.save_topic(replace(self.tree.get(topic_id), name=name))
        self.tree.put(renamed)
        return renamed
