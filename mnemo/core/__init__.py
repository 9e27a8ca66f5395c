"""
Core Module - Domain types, error kinds and the maturity model.

Components:
- items: LearningItem, ReadingItem, Topic, ReviewRecord, DependencyEdge
- errors: Error kinds raised by the core
- maturity: Memory-state updates after a review

Everything here is free of I/O; persistence lives in mnemo.db.
"""

from mnemo.core.errors import (
    CycleDetected,
    InvalidGrade,
    InvalidSpan,
    ItemNotDue,
    ItemNotFound,
    ItemSuspended,
    MnemoError,
    SelfDependency,
    StorageFailure,
    TopicCycle,
)
from mnemo.core.items import (
    DependencyEdge,
    ItemStatus,
    LearningItem,
    MemoryState,
    ReadingItem,
    ReviewRecord,
    Topic,
)
from mnemo.core.maturity import MaturityConfig, MaturityModel, MaturityUpdate

__all__ = [
    # Items
    "DependencyEdge",
    "ItemStatus",
    "LearningItem",
    "MemoryState",
    "ReadingItem",
    "ReviewRecord",
    "Topic",
    # Maturity
    "MaturityConfig",
    "MaturityModel",
    "MaturityUpdate",
    # Errors
    "MnemoError",
    "InvalidGrade",
    "SelfDependency",
    "CycleDetected",
    "TopicCycle",
    "ItemSuspended",
    "ItemNotDue",
    "ItemNotFound",
    "InvalidSpan",
    "StorageFailure",
]
