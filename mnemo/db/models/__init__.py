# SQLAlchemy models
from .base import Base, UTCDateTime
from .items import (
    STATUS_VALUES,
    CardRow,
    DependencyRow,
    ReadingRow,
    ReviewRow,
    TopicRow,
)

__all__ = [
    # Base
    "Base",
    "UTCDateTime",
    # Tables
    "CardRow",
    "DependencyRow",
    "ReadingRow",
    "ReviewRow",
    "TopicRow",
    "STATUS_VALUES",
]
