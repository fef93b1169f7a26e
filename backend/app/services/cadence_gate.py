"""Habit tick eligibility and per-habit streak continuity."""
from __future__ import annotations

from dataclasses import dataclass

from app.core.config import ONE_DAY_MS
from app.db.models.habit import HABIT_CUSTOM_INTERVAL, HABIT_WEEKLY
from app.services.errors import CadenceNotElapsedError
from app.services.streak_policy import DEFAULT_POLICY, EnginePolicy


@dataclass(frozen=True)
class CadenceDecision:
    cadence_ms: int
    elapsed_ms: int | None
    required_interval_ms: int
    # False when the tick arrives after the cadence window plus grace.
    continuous: bool


def cadence_ms(habit_type: str, interval_days: int | None) -> int:
    if habit_type == HABIT_WEEKLY:
        return 7 * ONE_DAY_MS
    if habit_type == HABIT_CUSTOM_INTERVAL:
        return max(int(interval_days or 1), 1) * ONE_DAY_MS
    return ONE_DAY_MS


def required_interval_ms(cadence: int, policy: EnginePolicy = DEFAULT_POLICY) -> int:
    return max(policy.habit_minimum_gap_ms, cadence - policy.habit_grace_period_ms)


def check_tick_allowed(
    *,
    habit_type: str,
    interval_days: int | None,
    last_checked_at: int | None,
    now: int,
    policy: EnginePolicy = DEFAULT_POLICY,
) -> CadenceDecision:
    """Return the cadence decision for a tick at ``now`` or raise ``CadenceNotElapsedError``."""
    cadence = cadence_ms(habit_type, interval_days)
    required = required_interval_ms(cadence, policy)

    if last_checked_at is None:
        return CadenceDecision(cadence_ms=cadence, elapsed_ms=None, required_interval_ms=required, continuous=False)

    elapsed = now - last_checked_at
    if elapsed < required:
        raise CadenceNotElapsedError(
            "Habit already checked within its cadence period",
            retry_after_ms=required - elapsed,
            elapsed_ms=elapsed,
            required_interval_ms=required,
        )

    return CadenceDecision(
        cadence_ms=cadence,
        elapsed_ms=elapsed,
        required_interval_ms=required,
        continuous=elapsed <= cadence + policy.habit_grace_period_ms,
    )


def next_streak_days(current_streak_days: int | None, decision: CadenceDecision) -> int:
    if decision.continuous:
        return (current_streak_days or 0) + 1
    return 1
