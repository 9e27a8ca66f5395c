"""mnemo: spaced repetition with prerequisites and incremental reading."""

__version__ = "0.1.0"

from mnemo.app import Workspace, open_workspace
from mnemo.core.items import ItemStatus, LearningItem, ReadingItem, ReviewRecord, Topic

__all__ = [
    "ItemStatus",
    "LearningItem",
    "ReadingItem",
    "ReviewRecord",
    "Topic",
    "Workspace",
    "open_workspace",
]
