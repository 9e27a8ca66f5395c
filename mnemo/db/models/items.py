"""
Table models for cards, review history, dependencies, topics and reading items.

Status is a single column; the initiated/complete/resolved booleans of
older schemas collapse into it, and `suspended` stays orthogonal.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Float,
    ForeignKey,
    Integer,
    Interval,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base

STATUS_VALUES = ("initiated", "active", "complete", "resolved")


class TopicRow(Base):
    """A node of the topic tree; root topics have no parent."""

    __tablename__ = "topics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    parent_id: Mapped[int | None] = mapped_column(ForeignKey("topics.id", ondelete="SET NULL"))
    relpos: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class CardRow(Base):
    """A learning item and its memory state."""

    __tablename__ = "cards"
    __table_args__ = (
        CheckConstraint(
            f"status IN ({', '.join(repr(s) for s in STATUS_VALUES)})", name="ck_cards_status"
        ),
        CheckConstraint("strength >= 0 AND stability >= 0", name="ck_cards_memory"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False, default="")
    topic_id: Mapped[int | None] = mapped_column(ForeignKey("topics.id", ondelete="SET NULL"))

    # Memory state
    strength: Mapped[float] = mapped_column(Float, nullable=False)
    stability: Mapped[float] = mapped_column(Float, nullable=False)

    # Status
    status: Mapped[str] = mapped_column(Text, nullable=False, default="initiated")
    suspended: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    source: Mapped[str | None] = mapped_column(Text)
    skip_from: Mapped[datetime | None] = mapped_column()
    skip_duration: Mapped[timedelta | None] = mapped_column(Interval)

    created_at: Mapped[datetime | None] = mapped_column()
    last_review: Mapped[datetime | None] = mapped_column()
    next_due: Mapped[datetime | None] = mapped_column(index=True)
    completed_at: Mapped[datetime | None] = mapped_column()


class DependencyRow(Base):
    """Prerequisite edge: `dependent` waits on `dependency`."""

    __tablename__ = "dependencies"
    __table_args__ = (CheckConstraint("dependent != dependency", name="ck_dependencies_self"),)

    dependent: Mapped[int] = mapped_column(
        ForeignKey("cards.id", ondelete="CASCADE"), primary_key=True
    )
    dependency: Mapped[int] = mapped_column(
        ForeignKey("cards.id", ondelete="CASCADE"), primary_key=True
    )


class ReviewRow(Base):
    """Append-only review log."""

    __tablename__ = "revlog"
    __table_args__ = (CheckConstraint("grade BETWEEN 0 AND 5", name="ck_revlog_grade"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    card_id: Mapped[int] = mapped_column(ForeignKey("cards.id"), nullable=False, index=True)
    timestamp: Mapped[datetime] = mapped_column(nullable=False)
    grade: Mapped[int] = mapped_column(Integer, nullable=False)
    latency_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class ReadingRow(Base):
    """Incremental-reading source or excerpt."""

    __tablename__ = "incread"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    parent_id: Mapped[int | None] = mapped_column(ForeignKey("incread.id", ondelete="SET NULL"))
    topic_id: Mapped[int | None] = mapped_column(ForeignKey("topics.id", ondelete="SET NULL"))
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    source: Mapped[str] = mapped_column(Text, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    rotation: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_viewed: Mapped[datetime | None] = mapped_column()
