"""
Item Store interface.

The scheduler and the reading pipeline only talk to storage through this
protocol. Every method is synchronous; any backend failure is raised as
StorageFailure and the core does not retry.
"""

from __future__ import annotations

from collections.abc import Sequence
from contextlib import AbstractContextManager
from typing import Protocol

from mnemo.core.items import (
    DependencyEdge,
    ItemStatus,
    LearningItem,
    ReadingItem,
    ReviewRecord,
    Topic,
)


class ItemStore(Protocol):
    """Durable storage of items, review history, dependencies, topics and reading items."""

    def transaction(self) -> AbstractContextManager[None]:
        """Writes inside the block commit together or not at all."""
        ...

    # Learning items
    def load_item(self, item_id: int) -> LearningItem: ...

    def save_item(self, item: LearningItem) -> LearningItem: ...

    def load_all_active_items(self) -> Sequence[LearningItem]: ...

    def load_items(self, status: ItemStatus | None = None) -> Sequence[LearningItem]: ...

    # Review history
    def append_review(self, record: ReviewRecord) -> ReviewRecord: ...

    def load_reviews(self, item_id: int) -> Sequence[ReviewRecord]: ...

    # Dependencies
    def load_edges(self) -> Sequence[DependencyEdge]: ...

    def save_edge(self, edge: DependencyEdge) -> None: ...

    def delete_edge(self, edge: DependencyEdge) -> None: ...

    # Topics
    def load_topics(self) -> Sequence[Topic]: ...

    def save_topic(self, topic: Topic) -> Topic: ...

    # Reading items
    def load_reading_items(self) -> Sequence[ReadingItem]: ...

    def load_reading_item(self, reading_id: int) -> ReadingItem: ...

    def save_reading_item(self, reading: ReadingItem) -> ReadingItem: ...
