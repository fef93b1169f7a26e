from __future__ import annotations

from app.core.clock import day_start, next_utc_midnight
from app.services.streak_calculator import (
    compute_backfilled_streak,
    compute_user_streak,
    evaluate_streak,
    today_window,
    yesterday_window,
)

DAY_MS = 86_400_000
HOUR_MS = 3_600_000
DAY = 19_700 * DAY_MS


class _RecordingEvidence:
    """Answers today's query first, then yesterday's."""

    def __init__(self, today: bool, yesterday: bool, latest=None):
        self._answers = [today, yesterday]
        self._latest = latest
        self.calls: list[tuple[int, int, tuple]] = []

    def has_completion_between(self, user_id, start, end, *, exclude_ids=()):
        self.calls.append((start, end, tuple(exclude_ids)))
        return self._answers[len(self.calls) - 1]

    def latest_completion_at(self, user_id, *, exclude_ids=()):
        return self._latest


def test_day_boundaries_are_utc_aligned() -> None:
    now = DAY + 13 * HOUR_MS + 5
    assert day_start(now) == DAY
    assert day_start(DAY) == DAY
    assert next_utc_midnight(now) == DAY + DAY_MS
    assert today_window(now) == (DAY, DAY + DAY_MS)
    assert yesterday_window(now) == (DAY - DAY_MS, DAY)


def test_first_completion_continues_from_yesterday() -> None:
    update = compute_user_streak(5, 8, completed_today=False, completed_yesterday=True)
    assert update.current_streak == 6
    assert update.longest_streak == 8
    assert update.first_completion_today is True
    assert update.continued is True


def test_first_completion_after_gap_restarts_at_one() -> None:
    update = compute_user_streak(12, 12, completed_today=False, completed_yesterday=False)
    assert update.current_streak == 1
    assert update.longest_streak == 12
    assert update.continued is False


def test_first_completion_ever() -> None:
    update = compute_user_streak(None, None, completed_today=False, completed_yesterday=False)
    assert update.current_streak == 1
    assert update.longest_streak == 1


def test_same_day_completion_keeps_streak() -> None:
    update = compute_user_streak(6, 8, completed_today=True, completed_yesterday=True)
    assert update.current_streak == 6
    assert update.longest_streak == 8
    assert update.first_completion_today is False


def test_same_day_completion_floors_streak_at_one() -> None:
    update = compute_user_streak(0, 0, completed_today=True, completed_yesterday=False)
    assert update.current_streak == 1
    assert update.longest_streak == 1


def test_new_record_raises_longest() -> None:
    update = compute_user_streak(8, 8, completed_today=False, completed_yesterday=True)
    assert update.current_streak == 9
    assert update.longest_streak == 9


def test_evaluate_skips_yesterday_query_when_already_completed_today() -> None:
    evidence = _RecordingEvidence(today=True, yesterday=True)
    now = DAY + 9 * HOUR_MS

    update = evaluate_streak(
        evidence,
        user_id=1,
        previous_current=3,
        previous_longest=4,
        now=now,
        exclude_ids=("task-1",),
    )

    assert update.current_streak == 3
    assert evidence.calls == [(DAY, DAY + DAY_MS, ("task-1",))]


def test_evaluate_checks_previous_day_window() -> None:
    evidence = _RecordingEvidence(today=False, yesterday=True)
    now = DAY + 9 * HOUR_MS

    update = evaluate_streak(evidence, user_id=1, previous_current=3, previous_longest=3, now=now)

    assert update.current_streak == 4
    assert evidence.calls[1][:2] == (DAY - DAY_MS, DAY)


def test_restart_remembers_the_broken_run() -> None:
    update = compute_user_streak(
        5,
        5,
        completed_today=False,
        completed_yesterday=False,
        last_active_day=DAY - DAY_MS,
    )
    assert update.current_streak == 1
    assert (update.previous_run_streak, update.previous_run_end_day) == (5, DAY - DAY_MS)


def test_backfill_of_the_only_missing_day_joins_both_runs() -> None:
    update = compute_backfilled_streak(
        1,
        5,
        event_day=DAY,
        latest_day=DAY + DAY_MS,
        day_had_completion=False,
        previous_run_streak=5,
        previous_run_end_day=DAY - DAY_MS,
    )
    assert (update.current_streak, update.longest_streak) == (7, 7)
    assert update.continued is True
    assert update.backfilled is True
    assert (update.previous_run_streak, update.previous_run_end_day) == (0, 0)


def test_backfill_of_an_active_day_changes_nothing() -> None:
    update = compute_backfilled_streak(
        3,
        4,
        event_day=DAY - DAY_MS,
        latest_day=DAY,
        day_had_completion=True,
    )
    assert (update.current_streak, update.longest_streak) == (3, 4)
    assert update.first_completion_today is False


def test_backfill_away_from_the_current_run_extends_the_older_run() -> None:
    update = compute_backfilled_streak(
        2,
        3,
        event_day=DAY - 5 * DAY_MS,
        latest_day=DAY,
        day_had_completion=False,
        previous_run_streak=3,
        previous_run_end_day=DAY - 6 * DAY_MS,
    )
    assert update.current_streak == 2
    assert update.longest_streak == 4
    assert (update.previous_run_streak, update.previous_run_end_day) == (4, DAY - 5 * DAY_MS)


def test_evaluate_routes_earlier_day_completions_to_backfill() -> None:
    evidence = _RecordingEvidence(today=False, yesterday=True, latest=DAY + DAY_MS + 10)

    update = evaluate_streak(
        evidence,
        user_id=1,
        previous_current=1,
        previous_longest=5,
        now=DAY + DAY_MS - 10,
        previous_run_streak=5,
        previous_run_end_day=DAY - DAY_MS,
    )

    assert update.current_streak == 7
    assert update.backfilled is True
    # Only the event's own day is queried.
    assert evidence.calls == [(DAY, DAY + DAY_MS, ())]
