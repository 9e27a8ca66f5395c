"""
Delivery: the entry points the presentation shell calls.

Components:
- Scheduler: due-item selection, grading, suspension, dependencies
- ReadingPipeline: incremental reading rotation, excerpt and promote
- TopicService: topic tree edits
"""

from .reading import ReadingPipeline
from .scheduler import GradeOutcome, Scheduler, SchedulerConfig
from .topics import TopicService

__all__ = [
    # Scheduling
    "Scheduler",
    "SchedulerConfig",
    "GradeOutcome",
    # Reading
    "ReadingPipeline",
    # Topics
    "TopicService",
]
