"""
Dependency-aware spaced-repetition scheduler.

Implements:
- Due-item selection gated on prerequisites
- Grading transitions through the item lifecycle
- Temporary skips and indefinite suspension

Lifecycle:
    INITIATED --activate--> ACTIVE --strength >= threshold--> COMPLETE
    COMPLETE --stable for the stabilization window--> RESOLVED
    COMPLETE --strength drops below threshold--> ACTIVE
    RESOLVED --gains an unresolved dependency--> COMPLETE

Only ACTIVE items are offered by next_due_item(). COMPLETE items whose
stabilization window has passed are offered by pending_resolution(); a
passing grade on one of them resolves it, which unlocks its dependents.

The scheduler holds no persistent state of its own. Its dependency graph
and topic tree are rebuilt from the store when it is constructed.
"""

from __future__ import annotations

import sys
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta

from loguru import logger

from mnemo.core.errors import ItemNotDue, ItemNotFound, ItemSuspended
from mnemo.core.items import DependencyEdge, ItemStatus, LearningItem, ReviewRecord
from mnemo.core.maturity import MaturityModel, validate_grade
from mnemo.db.store import ItemStore
from mnemo.graph.dependency_graph import DependencyGraph
from mnemo.graph.topics import TopicTree


@dataclass
class SchedulerConfig:
    """Configuration for status transitions."""

    completion_threshold: float = 0.9  # Strength needed to complete
    stabilization_window: timedelta = timedelta(days=3)  # Complete -> resolved delay


@dataclass(frozen=True)
class GradeOutcome:
    """What a grade did to an item."""

    item: LearningItem
    record: ReviewRecord
    previous_status: ItemStatus

    @property
    def status_changed(self) -> bool:
        return self.item.status != self.previous_status


class Scheduler:
    """
    Selects the next reviewable item and applies grades.

    All mutations go through the store; the in-memory graph is only
    updated after the store accepted the change.
    """

    def __init__(
        self,
        store: ItemStore,
        maturity: MaturityModel | None = None,
        config: SchedulerConfig | None = None,
        graph: DependencyGraph | None = None,
        topics: TopicTree | None = None,
    ):
        """
        Initialize the scheduler.

        Args:
            store: Item store (owner of all entities)
            maturity: Maturity model (creates default if None)
            config: Transition thresholds
            graph: Dependency graph (rebuilt from the store if None)
            topics: Topic tree (rebuilt from the store if None)
        """
        self.store = store
        self.maturity = maturity or MaturityModel()
        self.config = config or SchedulerConfig()
        self.graph = graph if graph is not None else DependencyGraph.from_edges(store.load_edges())
        self.topics = topics if topics is not None else TopicTree.from_topics(store.load_topics())

    # =========================================================================
    # Item creation
    # =========================================================================

    def create_item(
        self,
        question: str,
        answer: str = "",
        topic_id: int | None = None,
        source: str | None = None,
        now: datetime | None = None,
    ) -> LearningItem:
        """
        Create a card in INITIATED status with minimum strength and stability.

        Raises:
            ItemNotFound: topic_id is not a known topic
        """
        if topic_id is not None and topic_id not in self.topics:
            raise ItemNotFound("Topic", topic_id)
        item = LearningItem(
            question=question,
            answer=answer,
            topic_id=topic_id,
            memory=self.maturity.initial_state(),
            source=source,
            created_at=now or datetime.now(UTC),
        )
        item = self.store.save_item(item)
        logger.info(f"Created item {item.id}")
        return item

    def activate(self, item_id: int, now: datetime) -> LearningItem:
        """Queue an INITIATED item for review, due immediately."""
        item = self.store.load_item(item_id)
        if item.status != ItemStatus.INITIATED:
            logger.debug(f"Item {item_id} already {item.status.value}; activate ignored")
            return item
        item = replace(item, status=ItemStatus.ACTIVE, next_due=now)
        item = self.store.save_item(item)
        logger.info(f"Activated item {item_id}")
        return item

    # =========================================================================
    # Grading
    # =========================================================================

    def grade_review(
        self,
        item_id: int,
        grade: int,
        now: datetime,
        latency_ms: int = 0,
    ) -> GradeOutcome:
        """
        Record a review and move the item through its lifecycle.

        Raises:
            InvalidGrade: grade outside 0-5
            ItemSuspended: item is suspended or inside its skip window
            ItemNotDue: item not activated, not yet due, or already graded at `now`
            StorageFailure: the store rejected the write (nothing persisted)
        """
        validate_grade(grade)
        item = self.store.load_item(item_id)

        if item.suspended or item.in_skip_window(now):
            raise ItemSuspended(item_id)
        if item.next_due is None or now < item.next_due:
            raise ItemNotDue(item_id, item.next_due)
        if item.last_review is not None and now <= item.last_review:
            raise ItemNotDue(item_id, item.next_due)

        return self._apply_grade(item, grade, now, latency_ms)

    def backfill_review(
        self,
        item_id: int,
        grade: int,
        at: datetime,
        latency_ms: int = 0,
    ) -> GradeOutcome:
        """
        Record a review that happened outside the scheduler (e.g. on paper).

        Skips the due check; suspended items are still refused.
        """
        validate_grade(grade)
        item = self.store.load_item(item_id)
        if item.suspended:
            raise ItemSuspended(item_id)
        return self._apply_grade(item, grade, at, latency_ms)

    def _apply_grade(
        self,
        item: LearningItem,
        grade: int,
        now: datetime,
        latency_ms: int,
    ) -> GradeOutcome:
        last_review = item.last_review or item.created_at or now
        update = self.maturity.update(item.memory, grade, now, last_review)

        graded = replace(
            item,
            memory=update.memory,
            next_due=update.next_due,
            last_review=max(now, item.last_review) if item.last_review else now,
        )
        status, completed_at = self._next_status(graded, now)
        graded = replace(graded, status=status, completed_at=completed_at)

        record = ReviewRecord(item_id=item.id, timestamp=now, grade=grade, latency_ms=latency_ms)
        with self.store.transaction():
            saved = self.store.save_item(graded)
            stored = self.store.append_review(record)

        logger.debug(
            f"Recorded review for {item.id}: grade={grade}, "
            f"strength={update.strength:.3f}, stability={update.stability:.2f}d, "
            f"next_due={update.next_due.isoformat()}"
        )
        if saved.status != item.status:
            logger.info(f"Item {item.id}: {item.status.value} -> {saved.status.value}")

        return GradeOutcome(item=saved, record=stored, previous_status=item.status)

    def _next_status(self, item: LearningItem, now: datetime) -> tuple[ItemStatus, datetime | None]:
        """Status and completed_at after a grade has updated the memory state."""
        threshold = self.config.completion_threshold
        strength = item.memory.strength

        if item.status == ItemStatus.ACTIVE:
            if strength >= threshold:
                return ItemStatus.COMPLETE, now
            return ItemStatus.ACTIVE, None

        if item.status == ItemStatus.COMPLETE:
            if strength < threshold:
                return ItemStatus.ACTIVE, None
            if self._is_stabilized(item, now) and self.is_unlocked(item.id):
                return ItemStatus.RESOLVED, item.completed_at
            return ItemStatus.COMPLETE, item.completed_at

        # INITIATED (backfill only) and RESOLVED are not moved by grades
        return item.status, item.completed_at

    def _is_stabilized(self, item: LearningItem, now: datetime) -> bool:
        if item.completed_at is None:
            return False
        return now - item.completed_at > self.config.stabilization_window

    # =========================================================================
    # Selection
    # =========================================================================

    def _status_lookup(self) -> Callable[[int], ItemStatus]:
        """Status lookup that loads each dependency at most once per query."""
        cache: dict[int, ItemStatus] = {}

        def status_of(item_id: int) -> ItemStatus:
            if item_id not in cache:
                cache[item_id] = self.store.load_item(item_id).status
            return cache[item_id]

        return status_of

    def _sort_key(self, item: LearningItem) -> tuple:
        relpos = self.topics.relpos(item.topic_id)
        return (item.next_due, sys.maxsize if relpos is None else relpos, item.id)

    def is_unlocked(self, item_id: int) -> bool:
        """True iff every direct dependency of the item is RESOLVED."""
        return self.graph.is_unlocked(item_id, self._status_lookup())

    def _eligible(self, items: list[LearningItem], now: datetime) -> list[LearningItem]:
        status_of = self._status_lookup()
        due = sorted(
            (i for i in items if not i.suspended and not i.in_skip_window(now) and i.is_due(now)),
            key=self._sort_key,
        )
        return [i for i in due if self.graph.is_unlocked(i.id, status_of)]

    def next_due_item(self, now: datetime) -> LearningItem | None:
        """
        The ACTIVE, unsuspended, unlocked item with the earliest due time.

        Ties go to the lower topic position, then the lower id. Returns
        None when nothing is due.
        """
        candidates = self.store.load_all_active_items()
        status_of = self._status_lookup()
        for item in sorted(
            (i for i in candidates if not i.in_skip_window(now) and i.is_due(now)),
            key=self._sort_key,
        ):
            if self.graph.is_unlocked(item.id, status_of):
                return item
        return None

    def due_items(self, now: datetime) -> list[LearningItem]:
        """Every item next_due_item() could return, in selection order."""
        return self._eligible(self.store.load_all_active_items(), now)

    def due_count(self, now: datetime) -> int:
        return len(self.due_items(now))

    def pending_resolution(self, now: datetime) -> list[LearningItem]:
        """COMPLETE items that are due and past their stabilization window."""
        complete = self.store.load_items(ItemStatus.COMPLETE)
        return [i for i in self._eligible(complete, now) if self._is_stabilized(i, now)]

    # =========================================================================
    # Suspension
    # =========================================================================

    def suspend(self, item_id: int, duration: timedelta, now: datetime) -> LearningItem:
        """Skip an item for `duration` starting at `now`."""
        if duration <= timedelta(0):
            raise ValueError(f"Suspension duration must be positive, got {duration}")
        item = replace(self.store.load_item(item_id), skip_from=now, skip_duration=duration)
        item = self.store.save_item(item)
        logger.info(f"Item {item_id} skipped until {(now + duration).isoformat()}")
        return item

    def unsuspend(self, item_id: int) -> LearningItem:
        """Clear the skip window and the suspended flag, even early."""
        item = replace(
            self.store.load_item(item_id),
            skip_from=None,
            skip_duration=None,
            suspended=False,
        )
        return self.store.save_item(item)

    def set_suspended(self, item_id: int, suspended: bool = True) -> LearningItem:
        """Suspend or release an item indefinitely, whatever its status."""
        item = replace(self.store.load_item(item_id), suspended=suspended)
        item = self.store.save_item(item)
        logger.info(f"Item {item_id} {'suspended' if suspended else 'released'}")
        return item

    # =========================================================================
    # Dependencies
    # =========================================================================

    def add_edge(self, dependent: int, dependency: int) -> DependencyEdge:
        """
        Make `dependent` wait for `dependency` to resolve.

        A RESOLVED dependent gaining an unresolved dependency goes back to
        COMPLETE, together with every RESOLVED item that depends on it, so
        resolution keeps holding transitively.

        Raises:
            ItemNotFound: either item is unknown
            SelfDependency / CycleDetected: the edge would break the DAG
            StorageFailure: the edge could not be saved (graph unchanged)
        """
        self.store.load_item(dependent)
        prerequisite = self.store.load_item(dependency)
        self.graph.check_edge(dependent, dependency)

        edge = DependencyEdge(dependent=dependent, dependency=dependency)
        if edge in self.graph:
            return edge

        demoted: list[int] = []
        with self.store.transaction():
            self.store.save_edge(edge)
            if prerequisite.status != ItemStatus.RESOLVED:
                demoted = self._unresolve(dependent)
        self.graph.add_edge(dependent, dependency)

        logger.info(f"Item {dependent} now depends on {dependency}")
        if demoted:
            logger.info(f"Items back to complete until {dependency} resolves: {demoted}")
        return edge

    def _unresolve(self, item_id: int) -> list[int]:
        """Move a RESOLVED item and its RESOLVED dependents back to COMPLETE."""
        demoted = []
        seen = {item_id}
        queue = deque([item_id])
        while queue:
            item = self.store.load_item(queue.popleft())
            if item.status != ItemStatus.RESOLVED:
                # Nothing downstream of an unresolved item can be resolved
                continue
            self.store.save_item(replace(item, status=ItemStatus.COMPLETE))
            demoted.append(item.id)
            for nxt in sorted(self.graph.dependents_of(item.id) - seen):
                seen.add(nxt)
                queue.append(nxt)
        return demoted

    def remove_edge(self, dependent: int, dependency: int) -> None:
        """Remove a dependency; removing a missing edge is a no-op."""
        self.store.delete_edge(DependencyEdge(dependent=dependent, dependency=dependency))
        self.graph.remove_edge(dependent, dependency)
