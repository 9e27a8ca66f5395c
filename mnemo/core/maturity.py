"""
Maturity Model: memory-state updates after a review.

Grades use the SM-2 scale:
0 - Complete blackout, wrong response
1 - Incorrect, but upon seeing answer remembered
2 - Incorrect, but answer seemed easy to recall
3 - Correct, but with significant difficulty
4 - Correct, with some hesitation
5 - Correct, with perfect recall

Grades below the passing grade reset stability. Passing grades grow
stability in proportion to the time elapsed since the last review, so an
item reviewed early earns little and an item left unseen for a long time
earns at most one stability's worth of growth. The next interval always starts
at the review being graded, so a grade never leaves the item due again.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from mnemo.core.errors import InvalidGrade
from mnemo.core.items import MemoryState

MIN_GRADE = 0
MAX_GRADE = 5

_DAY_SECONDS = 86400.0


@dataclass
class MaturityConfig:
    """Bounds and rates for the maturity model."""

    strength_min: float = 0.0
    strength_max: float = 1.0
    stability_min: float = 1.0  # Days
    stability_max: float = 3650.0  # Days
    passing_grade: int = 3
    fail_penalty: float = 0.2
    stability_growth: float = 0.75
    strength_gain: float = 0.5
    minimum_interval: timedelta = timedelta(minutes=10)


@dataclass(frozen=True)
class MaturityUpdate:
    """Result of a single update."""

    strength: float
    stability: float
    next_due: datetime

    @property
    def memory(self) -> MemoryState:
        return MemoryState(strength=self.strength, stability=self.stability)


def validate_grade(grade: object) -> int:
    """Return the grade if it is an integer in 0-5, else raise InvalidGrade."""
    if isinstance(grade, bool) or not isinstance(grade, int):
        raise InvalidGrade(grade)
    if not MIN_GRADE <= grade <= MAX_GRADE:
        raise InvalidGrade(grade)
    return grade


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class MaturityModel:
    """
    Pure, deterministic memory-state update.

    Holds configuration only; update() has no side effects.
    """

    def __init__(self, config: MaturityConfig | None = None):
        """
        Initialize the model.

        Args:
            config: Custom configuration (uses defaults if None)
        """
        self.config = config or MaturityConfig()

    def initial_state(self) -> MemoryState:
        """Memory state of a freshly created item."""
        return MemoryState(
            strength=self.config.strength_min,
            stability=self.config.stability_min,
        )

    def is_passing(self, grade: int) -> bool:
        return validate_grade(grade) >= self.config.passing_grade

    def stability_factor(self, grade: int) -> float:
        """Multiplier for a passing grade; strictly increasing with grade."""
        steps = grade - self.config.passing_grade + 1
        return 1.0 + self.config.stability_growth * steps

    def strength_gain(self, grade: int) -> float:
        """Fraction of the remaining distance to strength_max recovered."""
        steps = grade - self.config.passing_grade + 1
        span = MAX_GRADE - self.config.passing_grade + 1
        return self.config.strength_gain * steps / span

    def interval(self, stability: float) -> timedelta:
        """Review interval for a given stability."""
        return timedelta(days=stability)

    def update(
        self,
        state: MemoryState,
        grade: int,
        now: datetime,
        last_review: datetime,
    ) -> MaturityUpdate:
        """
        Compute the memory state after a review.

        Args:
            state: Current strength and stability
            grade: Review grade (0-5)
            now: Time of this review
            last_review: Time of the previous review (creation time if none)

        Returns:
            MaturityUpdate with clamped strength/stability and next_due > now

        Raises:
            InvalidGrade: grade outside 0-5
        """
        validate_grade(grade)
        cfg = self.config

        if grade < cfg.passing_grade:
            strength = state.strength - cfg.fail_penalty
            stability = cfg.stability_min
            next_due = now + cfg.minimum_interval
        else:
            elapsed_days = max((now - last_review).total_seconds(), 0.0) / _DAY_SECONDS
            stability_now = _clamp(state.stability, cfg.stability_min, cfg.stability_max)
            credited = _clamp(elapsed_days, cfg.stability_min, stability_now)
            stability = stability_now + (self.stability_factor(grade) - 1.0) * credited
            strength = state.strength + (cfg.strength_max - state.strength) * self.strength_gain(grade)
            stability = _clamp(stability, cfg.stability_min, cfg.stability_max)
            next_due = now + self.interval(stability)

        return MaturityUpdate(
            strength=_clamp(strength, cfg.strength_min, cfg.strength_max),
            stability=_clamp(stability, cfg.stability_min, cfg.stability_max),
            next_due=max(next_due, now),
        )

    def grade_from_response(
        self,
        is_correct: bool,
        response_ms: int,
        expected_ms: int = 10000,
    ) -> int:
        """
        Convert a timed answer to an SM-2 grade.

        Args:
            is_correct: Whether the answer was correct
            response_ms: Time taken to respond
            expected_ms: Expected response time

        Returns:
            Grade 0-5
        """
        if not is_correct:
            if response_ms < expected_ms * 0.5:
                return 2  # Quick wrong = almost knew it
            elif response_ms < expected_ms:
                return 1
            else:
                return 0

        if response_ms < expected_ms * 0.5:
            return 5
        elif response_ms < expected_ms:
            return 4
        else:
            return 3
