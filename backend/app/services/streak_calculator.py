"""User-level daily streak continuity.

Days are fixed UTC windows of ``ONE_DAY_MS``. Completing any task or ticking
any habit counts toward the day; the first completion of a day decides
whether the streak continues (activity yesterday) or restarts at 1.

Completions can reach the lock out of clock order (two requests straddling
midnight). When a completion belongs to a day earlier than the latest
recorded activity it is treated as a backfill: it fills its own day and, if
that day was the only gap, joins the run that ended before it to the current
run. The run broken by the most recent restart is kept on the user for that.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple

from app.core.clock import day_start
from app.core.config import ONE_DAY_MS

logger = logging.getLogger(__name__)


class CompletionEvidence(Protocol):
    def has_completion_between(self, user_id: int, start: int, end: int, *, exclude_ids=()) -> bool:
        ...

    def latest_completion_at(self, user_id: int, *, exclude_ids=()) -> Optional[int]:
        ...


@dataclass(frozen=True)
class StreakUpdate:
    current_streak: int
    longest_streak: int
    first_completion_today: bool
    continued: bool
    # Run that ended before the current one began; end day is a UTC midnight, 0 when none.
    previous_run_streak: int = 0
    previous_run_end_day: int = 0
    backfilled: bool = False


def today_window(now: int) -> Tuple[int, int]:
    # Whole day, not [start, now): a concurrent completion stamped after this
    # caller read the clock must still count as earlier today.
    start = day_start(now)
    return start, start + ONE_DAY_MS


def yesterday_window(now: int) -> Tuple[int, int]:
    start = day_start(now)
    return start - ONE_DAY_MS, start


def compute_user_streak(
    previous_current: int | None,
    previous_longest: int | None,
    *,
    completed_today: bool,
    completed_yesterday: bool,
    previous_run_streak: int = 0,
    previous_run_end_day: int = 0,
    last_active_day: int | None = None,
) -> StreakUpdate:
    previous_current = previous_current or 0
    previous_longest = previous_longest or 0

    if completed_today:
        # Something already counted today; a same-day completion never moves the streak.
        current = max(previous_current, 1)
        return StreakUpdate(
            current_streak=current,
            longest_streak=max(previous_longest, current),
            first_completion_today=False,
            continued=False,
            previous_run_streak=previous_run_streak,
            previous_run_end_day=previous_run_end_day,
        )

    if completed_yesterday:
        current = previous_current + 1
    else:
        current = 1
        if previous_current and last_active_day is not None:
            previous_run_streak, previous_run_end_day = previous_current, last_active_day

    return StreakUpdate(
        current_streak=current,
        longest_streak=max(previous_longest, current),
        first_completion_today=True,
        continued=completed_yesterday,
        previous_run_streak=previous_run_streak,
        previous_run_end_day=previous_run_end_day,
    )


def compute_backfilled_streak(
    previous_current: int | None,
    previous_longest: int | None,
    *,
    event_day: int,
    latest_day: int,
    day_had_completion: bool,
    previous_run_streak: int = 0,
    previous_run_end_day: int = 0,
) -> StreakUpdate:
    """Streak after a completion for ``event_day`` that lands after ``latest_day`` was recorded."""
    previous_longest = previous_longest or 0
    current = max(previous_current or 0, 1)

    if day_had_completion:
        return StreakUpdate(
            current_streak=current,
            longest_streak=max(previous_longest, current),
            first_completion_today=False,
            continued=False,
            previous_run_streak=previous_run_streak,
            previous_run_end_day=previous_run_end_day,
            backfilled=True,
        )

    left = previous_run_streak if previous_run_end_day == event_day - ONE_DAY_MS else 0
    bridged = left + 1
    current_run_start = latest_day - (current - 1) * ONE_DAY_MS

    if current_run_start == event_day + ONE_DAY_MS:
        current = bridged + current
        previous_run_streak, previous_run_end_day = 0, 0
        joined = True
    else:
        joined = False
        if event_day > previous_run_end_day:
            previous_run_streak, previous_run_end_day = bridged, event_day

    return StreakUpdate(
        current_streak=current,
        longest_streak=max(previous_longest, current, bridged),
        first_completion_today=True,
        continued=joined,
        previous_run_streak=previous_run_streak,
        previous_run_end_day=previous_run_end_day,
        backfilled=True,
    )


def evaluate_streak(
    evidence: CompletionEvidence,
    *,
    user_id: int,
    previous_current: int | None,
    previous_longest: int | None,
    now: int,
    exclude_ids=(),
    previous_run_streak: int = 0,
    previous_run_end_day: int = 0,
) -> StreakUpdate:
    """Query completion evidence and compute the user's new streak.

    Must run before the entity being completed is written, under the user's
    exclusive scope, so concurrent completions cannot both see an empty day.
    """
    event_day = day_start(now)
    latest = evidence.latest_completion_at(user_id, exclude_ids=exclude_ids)
    latest_day = day_start(latest) if latest is not None else None

    start, end = today_window(now)
    completed_today = evidence.has_completion_between(user_id, start, end, exclude_ids=exclude_ids)

    if latest_day is not None and latest_day > event_day:
        update = compute_backfilled_streak(
            previous_current,
            previous_longest,
            event_day=event_day,
            latest_day=latest_day,
            day_had_completion=completed_today,
            previous_run_streak=previous_run_streak,
            previous_run_end_day=previous_run_end_day,
        )
        logger.info(
            "Out-of-order completion for user %s on day %s after activity on day %s (streak=%s->%s)",
            user_id,
            event_day,
            latest_day,
            previous_current,
            update.current_streak,
        )
        return update

    completed_yesterday = False
    if not completed_today:
        y_start, y_end = yesterday_window(now)
        completed_yesterday = evidence.has_completion_between(user_id, y_start, y_end, exclude_ids=exclude_ids)

    update = compute_user_streak(
        previous_current,
        previous_longest,
        completed_today=completed_today,
        completed_yesterday=completed_yesterday,
        previous_run_streak=previous_run_streak,
        previous_run_end_day=previous_run_end_day,
        last_active_day=latest_day,
    )
    logger.debug(
        "Streak evaluated user=%s today=%s yesterday=%s streak=%s->%s longest=%s",
        user_id,
        completed_today,
        completed_yesterday,
        previous_current,
        update.current_streak,
        update.longest_streak,
    )
    return update
