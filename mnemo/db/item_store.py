"""
SQLAlchemy-backed Item Store.

Provides persistence for:
- Learning items and their memory state
- The append-only review log
- Dependency edges, topics and reading items

Database location: ~/.mnemo/mnemo.db unless MNEMO_DATABASE_URL is set.

Every public method runs inside a transaction. Calls made inside an
explicit `transaction()` block share it, so a grade (item update plus
review record) commits as one unit.
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path

from loguru import logger
from sqlalchemy import Engine, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mnemo.core.errors import ItemNotFound, StorageFailure
from mnemo.core.items import (
    DependencyEdge,
    ItemStatus,
    LearningItem,
    MemoryState,
    ReadingItem,
    ReviewRecord,
    Topic,
)
from mnemo.db.database import create_db_engine, init_db, make_session_factory, session_scope
from mnemo.db.models import CardRow, DependencyRow, ReadingRow, ReviewRow, TopicRow

# =============================================================================
# Row mapping
# =============================================================================


def _item_from_row(row: CardRow) -> LearningItem:
    return LearningItem(
        id=row.id,
        question=row.question,
        answer=row.answer,
        topic_id=row.topic_id,
        memory=MemoryState(strength=row.strength, stability=row.stability),
        status=ItemStatus(row.status),
        suspended=row.suspended,
        source=row.source,
        skip_from=row.skip_from,
        skip_duration=row.skip_duration,
        created_at=row.created_at,
        last_review=row.last_review,
        next_due=row.next_due,
        completed_at=row.completed_at,
    )


def _copy_item_to_row(item: LearningItem, row: CardRow) -> None:
    row.question = item.question
    row.answer = item.answer
    row.topic_id = item.topic_id
    row.strength = item.memory.strength
    row.stability = item.memory.stability
    row.status = item.status.value
    row.suspended = item.suspended
    row.source = item.source
    row.skip_from = item.skip_from
    row.skip_duration = item.skip_duration
    row.created_at = item.created_at
    row.last_review = item.last_review
    row.next_due = item.next_due
    row.completed_at = item.completed_at


def _review_from_row(row: ReviewRow) -> ReviewRecord:
    return ReviewRecord(
        id=row.id,
        item_id=row.card_id,
        timestamp=row.timestamp,
        grade=row.grade,
        latency_ms=row.latency_ms,
    )


def _topic_from_row(row: TopicRow) -> Topic:
    return Topic(id=row.id, name=row.name, parent_id=row.parent_id, relpos=row.relpos)


def _reading_from_row(row: ReadingRow) -> ReadingItem:
    return ReadingItem(
        id=row.id,
        parent_id=row.parent_id,
        topic_id=row.topic_id,
        title=row.title,
        source=row.source,
        active=row.active,
        rotation=row.rotation,
        last_viewed=row.last_viewed,
    )


# =============================================================================
# Store
# =============================================================================


class SqlItemStore:
    """
    Item Store over a SQLAlchemy engine.

    The store handle belongs to the control loop; it is not shared across
    threads.
    """

    def __init__(self, engine: Engine, create_tables: bool = True):
        """
        Initialize the store.

        Args:
            engine: SQLAlchemy engine (see create_db_engine)
            create_tables: Create missing tables on startup
        """
        self.engine = engine
        self._factory = make_session_factory(engine)
        self._session: Session | None = None
        if create_tables:
            try:
                init_db(engine)
            except SQLAlchemyError as e:
                raise StorageFailure(f"Cannot initialize database: {e}") from e

    @classmethod
    def from_url(cls, url: str, echo: bool = False) -> SqlItemStore:
        """Open (and create if needed) the database at a SQLAlchemy URL."""
        parsed = make_url(url)
        if parsed.get_backend_name() == "sqlite" and parsed.database not in (None, "", ":memory:"):
            Path(parsed.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
        store = cls(create_db_engine(url, echo=echo))
        logger.info(f"Item store opened at {parsed.render_as_string(hide_password=True)}")
        return store

    def close(self) -> None:
        self.engine.dispose()

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """
        Group writes so they commit together or not at all.

        Nested calls join the outermost transaction.
        """
        if self._session is not None:
            yield
            return

        try:
            with session_scope(self._factory) as session:
                self._session = session
                yield
        except SQLAlchemyError as e:
            logger.error(f"Transaction rolled back: {e}")
            raise StorageFailure(str(e)) from e
        finally:
            self._session = None

    @contextmanager
    def _op(self, action: str) -> Generator[Session, None, None]:
        try:
            with self.transaction():
                yield self._session
        except SQLAlchemyError as e:
            logger.error(f"{action} failed: {e}")
            raise StorageFailure(f"{action} failed: {e}") from e

    # =========================================================================
    # Learning Items
    # =========================================================================

    def load_item(self, item_id: int) -> LearningItem:
        """
        Load a learning item.

        Raises:
            ItemNotFound: no item with this id
        """
        with self._op("load_item") as session:
            row = session.get(CardRow, item_id)
            if row is None:
                raise ItemNotFound("Item", item_id)
            return _item_from_row(row)

    def save_item(self, item: LearningItem) -> LearningItem:
        """
        Insert a new item or update an existing one.

        Returns:
            The item as stored (with its id assigned)
        """
        with self._op("save_item") as session:
            if item.id is None:
                row = CardRow()
                _copy_item_to_row(item, row)
                session.add(row)
                session.flush()
                logger.debug(f"Created item {row.id}")
                return replace(item, id=row.id)

            row = session.get(CardRow, item.id)
            if row is None:
                raise ItemNotFound("Item", item.id)
            _copy_item_to_row(item, row)
            session.flush()
            return replace(item)

    def load_all_active_items(self) -> list[LearningItem]:
        """Active, unsuspended items: the candidates for review."""
        with self._op("load_all_active_items") as session:
            rows = session.scalars(
                select(CardRow)
                .where(CardRow.status == ItemStatus.ACTIVE.value, CardRow.suspended.is_(False))
                .order_by(CardRow.id)
            )
            return [_item_from_row(r) for r in rows]

    def load_items(self, status: ItemStatus | None = None) -> list[LearningItem]:
        """All items, optionally filtered by primary status."""
        with self._op("load_items") as session:
            stmt = select(CardRow).order_by(CardRow.id)
            if status is not None:
                stmt = stmt.where(CardRow.status == status.value)
            return [_item_from_row(r) for r in session.scalars(stmt)]

    # =========================================================================
    # Review Log
    # =========================================================================

    def append_review(self, record: ReviewRecord) -> ReviewRecord:
        """Append a review record; records are never updated."""
        if record.id is not None:
            raise ValueError("Review records are append-only; this one is already stored")
        with self._op("append_review") as session:
            row = ReviewRow(
                card_id=record.item_id,
                timestamp=record.timestamp,
                grade=record.grade,
                latency_ms=record.latency_ms,
            )
            session.add(row)
            session.flush()
            return replace(record, id=row.id)

    def load_reviews(self, item_id: int) -> list[ReviewRecord]:
        """Review history for an item, oldest first."""
        with self._op("load_reviews") as session:
            rows = session.scalars(
                select(ReviewRow)
                .where(ReviewRow.card_id == item_id)
                .order_by(ReviewRow.timestamp, ReviewRow.id)
            )
            return [_review_from_row(r) for r in rows]

    # =========================================================================
    # Dependencies
    # =========================================================================

    def load_edges(self) -> list[DependencyEdge]:
        with self._op("load_edges") as session:
            rows = session.scalars(
                select(DependencyRow).order_by(DependencyRow.dependent, DependencyRow.dependency)
            )
            return [DependencyEdge(dependent=r.dependent, dependency=r.dependency) for r in rows]

    def save_edge(self, edge: DependencyEdge) -> None:
        with self._op("save_edge") as session:
            if session.get(DependencyRow, (edge.dependent, edge.dependency)) is None:
                session.add(DependencyRow(dependent=edge.dependent, dependency=edge.dependency))
                session.flush()

    def delete_edge(self, edge: DependencyEdge) -> None:
        with self._op("delete_edge") as session:
            row = session.get(DependencyRow, (edge.dependent, edge.dependency))
            if row is not None:
                session.delete(row)
                session.flush()

    # =========================================================================
    # Topics
    # =========================================================================

    def load_topics(self) -> list[Topic]:
        with self._op("load_topics") as session:
            rows = session.scalars(select(TopicRow).order_by(TopicRow.id))
            return [_topic_from_row(r) for r in rows]

    def save_topic(self, topic: Topic) -> Topic:
        with self._op("save_topic") as session:
            if topic.id is None:
                row = TopicRow()
                session.add(row)
            else:
                row = session.get(TopicRow, topic.id)
                if row is None:
                    raise ItemNotFound("Topic", topic.id)
            row.name = topic.name
            row.parent_id = topic.parent_id
            row.relpos = topic.relpos
            session.flush()
            return replace(topic, id=row.id)

    # =========================================================================
    # Reading Items
    # =========================================================================

    def load_reading_items(self) -> list[ReadingItem]:
        with self._op("load_reading_items") as session:
            rows = session.scalars(select(ReadingRow).order_by(ReadingRow.id))
            return [_reading_from_row(r) for r in rows]

    def load_reading_item(self, reading_id: int) -> ReadingItem:
        with self._op("load_reading_item") as session:
            row = session.get(ReadingRow, reading_id)
            if row is None:
                raise ItemNotFound("Reading item", reading_id)
            return _reading_from_row(row)

    def save_reading_item(self, reading: ReadingItem) -> ReadingItem:
        with self._op("save_reading_item") as session:
            if reading.id is None:
                row = ReadingRow()
                session.add(row)
            else:
                row = session.get(ReadingRow, reading.id)
                if row is None:
                    raise ItemNotFound("Reading item", reading.id)
            row.parent_id = reading.parent_id
            row.topic_id = reading.topic_id
            row.title = reading.title
            row.source = reading.source
            row.active = reading.active
            row.rotation = reading.rotation
            row.last_viewed = reading.last_viewed
            session.flush()
            return replace(reading, id=row.id)
