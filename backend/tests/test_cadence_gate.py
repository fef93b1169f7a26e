from __future__ import annotations

import pytest

from app.db.models.habit import HABIT_CUSTOM_INTERVAL, HABIT_DAILY, HABIT_WEEKLY
from app.services.cadence_gate import cadence_ms, check_tick_allowed, next_streak_days, required_interval_ms
from app.services.errors import CadenceNotElapsedError
from app.services.streak_policy import EnginePolicy

DAY_MS = 86_400_000
HOUR_MS = 3_600_000
MINUTE_MS = 60_000
T = 19_700 * DAY_MS + 9 * HOUR_MS


def test_cadence_lengths() -> None:
    assert cadence_ms(HABIT_DAILY, 1) == DAY_MS
    assert cadence_ms(HABIT_WEEKLY, 1) == 7 * DAY_MS
    assert cadence_ms(HABIT_CUSTOM_INTERVAL, 3) == 3 * DAY_MS
    assert cadence_ms("MONTHLY", 5) == DAY_MS


def test_first_tick_is_always_permitted() -> None:
    decision = check_tick_allowed(habit_type=HABIT_DAILY, interval_days=1, last_checked_at=None, now=T)
    assert decision.elapsed_ms is None
    assert decision.continuous is False
    assert next_streak_days(0, decision) == 1


def test_daily_tick_ten_minutes_later_is_rejected() -> None:
    with pytest.raises(CadenceNotElapsedError) as exc_info:
        check_tick_allowed(habit_type=HABIT_DAILY, interval_days=1, last_checked_at=T, now=T + 10 * MINUTE_MS)
    assert exc_info.value.retry_after_ms == 22 * HOUR_MS - 10 * MINUTE_MS
    assert exc_info.value.details["required_interval_ms"] == 22 * HOUR_MS


def test_daily_tick_twenty_three_hours_later_is_permitted() -> None:
    decision = check_tick_allowed(habit_type=HABIT_DAILY, interval_days=1, last_checked_at=T, now=T + 23 * HOUR_MS)
    assert decision.continuous is True
    assert next_streak_days(4, decision) == 5


def test_boundary_of_required_interval_is_permitted() -> None:
    decision = check_tick_allowed(habit_type=HABIT_DAILY, interval_days=1, last_checked_at=T, now=T + 22 * HOUR_MS)
    assert decision.elapsed_ms == 22 * HOUR_MS


def test_tick_past_cadence_plus_grace_restarts() -> None:
    on_edge = check_tick_allowed(habit_type=HABIT_DAILY, interval_days=1, last_checked_at=T, now=T + 26 * HOUR_MS)
    late = check_tick_allowed(habit_type=HABIT_DAILY, interval_days=1, last_checked_at=T, now=T + 26 * HOUR_MS + 1)
    assert on_edge.continuous is True
    assert late.continuous is False
    assert next_streak_days(9, late) == 1


def test_minimum_gap_floors_large_grace() -> None:
    policy = EnginePolicy(habit_grace_period_ms=DAY_MS)
    assert required_interval_ms(DAY_MS, policy) == HOUR_MS

    with pytest.raises(CadenceNotElapsedError):
        check_tick_allowed(
            habit_type=HABIT_DAILY,
            interval_days=1,
            last_checked_at=T,
            now=T + 30 * MINUTE_MS,
            policy=policy,
        )
    decision = check_tick_allowed(
        habit_type=HABIT_DAILY,
        interval_days=1,
        last_checked_at=T,
        now=T + HOUR_MS,
        policy=policy,
    )
    assert decision.required_interval_ms == HOUR_MS


def test_policy_rejects_non_positive_minimum_gap() -> None:
    with pytest.raises(ValueError):
        EnginePolicy(habit_minimum_gap_ms=0)
