"""
Error kinds raised by the mnemo core.

Every precondition failure is raised before any state is mutated, so a
caller that catches one of these can re-query and carry on. Expected
outcomes ("nothing is due") are never signalled with an exception.
"""

from __future__ import annotations


class MnemoError(Exception):
    """Base class for all mnemo errors."""


class InvalidGrade(MnemoError, ValueError):
    """Raised when a grade is outside the 0-5 ordinal range."""

    def __init__(self, grade: object):
        self.grade = grade
        super().__init__(f"Invalid grade {grade!r}: expected an integer between 0 and 5")


class SelfDependency(MnemoError):
    """Raised when an item is made to depend on itself."""

    def __init__(self, item_id: int):
        self.item_id = item_id
        super().__init__(f"Item {item_id} cannot depend on itself")


class CycleDetected(MnemoError):
    """Raised when a dependency edge would close a cycle."""

    def __init__(self, dependent: int, dependency: int):
        self.dependent = dependent
        self.dependency = dependency
        super().__init__(
            f"Adding {dependent} -> {dependency} would create a cycle: "
            f"{dependency} already depends on {dependent}"
        )


class TopicCycle(MnemoError):
    """Raised when a topic move would make a topic its own ancestor."""

    def __init__(self, topic_id: int, new_parent_id: int | None):
        self.topic_id = topic_id
        self.new_parent_id = new_parent_id
        super().__init__(f"Topic {topic_id} cannot be moved under {new_parent_id}")


class ItemSuspended(MnemoError):
    """Raised when grading an item that is suspended or inside its skip window."""

    def __init__(self, item_id: int):
        self.item_id = item_id
        super().__init__(f"Item {item_id} is suspended")


class ItemNotDue(MnemoError):
    """Raised when grading an item before its next due time."""

    def __init__(self, item_id: int, next_due=None):
        self.item_id = item_id
        self.next_due = next_due
        when = next_due.isoformat() if next_due else "never (not activated)"
        super().__init__(f"Item {item_id} is not due until {when}")


class ItemNotFound(MnemoError, LookupError):
    """Raised when an item, reading item or topic id is unknown to the store."""

    def __init__(self, kind: str, item_id: int):
        self.kind = kind
        self.item_id = item_id
        super().__init__(f"{kind} {item_id} not found")


class InvalidSpan(MnemoError, ValueError):
    """Raised when an excerpt span does not fit inside its parent's text."""

    def __init__(self, span: tuple[int, int], length: int):
        self.span = span
        self.length = length
        super().__init__(f"Span {span} is not a non-empty range within 0..{length}")


class StorageFailure(MnemoError):
    """Raised when the item store fails; fatal for the current operation."""
