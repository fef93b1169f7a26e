"""Tunable constants for the streak engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

from app.core.config import ONE_DAY_MS, ONE_HOUR_MS, ONE_MINUTE_MS, Settings

DEFAULT_MILESTONES: Tuple[int, ...] = (7, 30, 100)


@dataclass(frozen=True)
class EnginePolicy:
    """Timing and threshold parameters handed to every engine operation.

    ``habit_grace_period_ms`` lets a habit be ticked slightly before its next
    due boundary; ``habit_minimum_gap_ms`` is the floor between two ticks no
    matter how large the grace period is.
    """

    habit_grace_period_ms: int = 2 * ONE_HOUR_MS
    habit_minimum_gap_ms: int = ONE_HOUR_MS
    reset_interval_ms: int = ONE_DAY_MS
    reset_grace_period_ms: int = 15 * ONE_MINUTE_MS
    milestone_thresholds: Tuple[int, ...] = field(default=DEFAULT_MILESTONES)
    user_lock_nowait: bool = False

    def __post_init__(self) -> None:
        if self.habit_grace_period_ms < 0 or self.reset_grace_period_ms < 0:
            raise ValueError("Grace periods must be non-negative")
        if self.habit_minimum_gap_ms <= 0:
            raise ValueError("habit_minimum_gap_ms must be positive")
        if self.reset_interval_ms <= 0:
            raise ValueError("reset_interval_ms must be positive")
        object.__setattr__(self, "milestone_thresholds", tuple(sorted(set(self.milestone_thresholds))))


DEFAULT_POLICY = EnginePolicy()


def policy_from_settings(settings: Settings) -> EnginePolicy:
    return EnginePolicy(
        habit_grace_period_ms=settings.habit_grace_period_ms,
        habit_minimum_gap_ms=settings.habit_minimum_gap_ms,
        reset_interval_ms=settings.reset_interval_ms,
        reset_grace_period_ms=settings.reset_grace_period_ms,
        milestone_thresholds=tuple(settings.milestone_thresholds),
        user_lock_nowait=settings.user_lock_nowait,
    )
