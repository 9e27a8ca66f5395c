"""
Domain types shared by the scheduler, the dependency graph and the store.

These are plain dataclasses; persistence lives in mnemo.db.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum


class ItemStatus(str, Enum):
    """
    Primary lifecycle state of a learning item.

    Suspension is tracked separately on the item, so any of these
    states can be suspended.
    """

    INITIATED = "initiated"  # Created, not yet queued for review
    ACTIVE = "active"  # Reviewed on schedule
    COMPLETE = "complete"  # Strength reached the completion threshold
    RESOLVED = "resolved"  # Stable; unlocks dependents

    @property
    def color(self) -> str:
        """Rich color for CLI display."""
        return {
            ItemStatus.INITIATED: "dim",
            ItemStatus.ACTIVE: "yellow",
            ItemStatus.COMPLETE: "cyan",
            ItemStatus.RESOLVED: "green",
        }[self]


@dataclass
class MemoryState:
    """Memory strength (recall confidence, 0-1) and stability (days)."""

    strength: float
    stability: float


@dataclass
class LearningItem:
    """A question/answer card subject to spaced review."""

    question: str
    answer: str
    memory: MemoryState
    topic_id: int | None = None
    status: ItemStatus = ItemStatus.INITIATED
    suspended: bool = False
    source: str | None = None
    skip_from: datetime | None = None
    skip_duration: timedelta | None = None
    created_at: datetime | None = None
    last_review: datetime | None = None
    next_due: datetime | None = None
    completed_at: datetime | None = None
    id: int | None = None

    def in_skip_window(self, now: datetime) -> bool:
        """True while a temporary skip set by suspend() is still running."""
        if self.skip_from is None or self.skip_duration is None:
            return False
        return self.skip_from <= now < self.skip_from + self.skip_duration

    def is_due(self, now: datetime) -> bool:
        return self.next_due is not None and self.next_due <= now


@dataclass(frozen=True)
class DependencyEdge:
    """`dependent` may not be studied until `dependency` is resolved."""

    dependent: int
    dependency: int


@dataclass
class Topic:
    name: str
    parent_id: int | None = None
    relpos: int = 0
    id: int | None = None


@dataclass(frozen=True)
class ReviewRecord:
    """One graded review. Never modified once written."""

    item_id: int
    timestamp: datetime
    grade: int
    latency_ms: int = 0
    id: int | None = None


@dataclass
class ReadingItem:
    """A piece of source text, progressively excerpted or promoted into cards."""

    source: str
    parent_id: int | None = None
    topic_id: int | None = None
    title: str = ""
    active: bool = True
    rotation: int = 0
    last_viewed: datetime | None = None
    id: int | None = None

    @property
    def is_top_level(self) -> bool:
        return self.parent_id is None
