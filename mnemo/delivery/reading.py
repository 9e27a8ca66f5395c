"""
Incremental Reading Pipeline.

Reading items are source texts that get progressively excerpted into
smaller reading items and finally promoted into learning items.

Rotation policy: reading items have no memory model. Each carries a
rotation number; next_due_reading() shows the active item with the lowest
rotation (ties: topic position, then id) and moves it to the back of the
queue. New excerpts start at rotation 0 so they come up soon after they
are cut.
"""

from __future__ import annotations

import sys
from dataclasses import replace
from datetime import datetime

from loguru import logger

from mnemo.core.errors import InvalidSpan, ItemNotFound
from mnemo.core.items import DependencyEdge, LearningItem, ReadingItem
from mnemo.delivery.scheduler import Scheduler

SOURCE_PREFIX = "reading:"


def source_reference(reading_id: int) -> str:
    """Provenance string stored on cards promoted from a reading item."""
    return f"{SOURCE_PREFIX}{reading_id}"


class ReadingPipeline:
    """Round-robin reading queue with excerpt and promote actions."""

    def __init__(self, scheduler: Scheduler):
        """
        Initialize the pipeline.

        Args:
            scheduler: Scheduler whose store, topics and dependency
                registration are reused
        """
        self.scheduler = scheduler
        self.store = scheduler.store

    def add_source(self, text: str, topic_id: int | None = None, title: str = "") -> ReadingItem:
        """Add a top-level reading source."""
        if not text.strip():
            raise ValueError("Reading source text is empty")
        if topic_id is not None and topic_id not in self.scheduler.topics:
            raise ItemNotFound("Topic", topic_id)
        reading = self.store.save_reading_item(
            ReadingItem(source=text, topic_id=topic_id, title=title)
        )
        logger.info(f"Added reading source {reading.id}")
        return reading

    def _queue_key(self, reading: ReadingItem) -> tuple:
        relpos = self.scheduler.topics.relpos(reading.topic_id)
        return (reading.rotation, sys.maxsize if relpos is None else relpos, reading.id)

    def queue(self) -> list[ReadingItem]:
        """Active reading items in the order they will be shown."""
        active = [r for r in self.store.load_reading_items() if r.active]
        return sorted(active, key=self._queue_key)

    def next_due_reading(self, now: datetime) -> ReadingItem | None:
        """
        Show the next reading item and move it to the back of the rotation.

        Returns None when no reading item is active.
        """
        items = self.store.load_reading_items()
        active = sorted((r for r in items if r.active), key=self._queue_key)
        if not active:
            return None

        chosen = active[0]
        back_of_queue = max(r.rotation for r in active) + 1
        viewed = replace(chosen, rotation=back_of_queue, last_viewed=now)
        return self.store.save_reading_item(viewed)

    def excerpt(self, parent_id: int, span: tuple[int, int], title: str = "") -> ReadingItem:
        """
        Cut `parent.source[start:end]` into a new active child.

        The parent stays active so it can yield further excerpts.

        Raises:
            InvalidSpan: span empty or outside the parent's text
        """
        parent = self.store.load_reading_item(parent_id)
        start, end = span
        if not 0 <= start < end <= len(parent.source):
            raise InvalidSpan(span, len(parent.source))

        child = self.store.save_reading_item(
            ReadingItem(
                source=parent.source[start:end],
                parent_id=parent.id,
                topic_id=parent.topic_id,
                title=title or parent.title,
            )
        )
        logger.debug(f"Excerpted {child.id} from {parent_id} [{start}:{end}]")
        return child

    def promote(
        self,
        reading_id: int,
        question: str | None = None,
        answer: str = "",
        dependency: int | None = None,
        now: datetime | None = None,
    ) -> LearningItem:
        """
        Turn a reading item into an INITIATED learning item.

        The reading item is deactivated and the optional dependency edge is
        saved in the same transaction; the in-memory graph learns the edge
        only after that transaction commits.

        Args:
            reading_id: Reading item to promote
            question: Card prompt (defaults to the reading text)
            answer: Card answer
            dependency: Item the new card should wait for
            now: Creation time
        """
        reading = self.store.load_reading_item(reading_id)
        if dependency is not None:
            # A brand-new item has no dependents, so only existence can fail
            self.store.load_item(dependency)
        edge = None
        with self.store.transaction():
            item = self.scheduler.create_item(
                question=question if question is not None else reading.source,
                answer=answer,
                topic_id=reading.topic_id,
                source=source_reference(reading_id),
                now=now,
            )
            self.store.save_reading_item(replace(reading, active=False))
            if dependency is not None:
                edge = DependencyEdge(dependent=item.id, dependency=dependency)
                self.store.save_edge(edge)
        if edge is not None:
            self.scheduler.graph.add_edge(edge.dependent, edge.dependency)
        logger.info(f"Promoted reading item {reading_id} to item {item.id}")
        return item

    def mark_done(self, reading_id: int) -> ReadingItem:
        """Deactivate a reading item that has been fully excerpted."""
        reading = self.store.load_reading_item(reading_id)
        return self.store.save_reading_item(replace(reading, active=False))

    def children_of(self, reading_id: int) -> list[ReadingItem]:
        return [r for r in self.store.load_reading_items() if r.parent_id == reading_id]
