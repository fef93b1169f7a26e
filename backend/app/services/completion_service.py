"""Completion transaction coordinator for task completions and habit ticks."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from app.db.models.activity_log import ActivityLog
from app.db.models.habit import Habit
from app.db.models.task import TASK_COMPLETED, TASK_PENDING, Task
from app.services.cadence_gate import check_tick_allowed, next_streak_days
from app.services.errors import AlreadyTerminalError, InvalidEventError
from app.services.milestones import MILESTONE_ACTION, MilestoneAchievement, MilestoneSet, detect_milestone
from app.services.streak_calculator import evaluate_streak
from app.services.streak_policy import DEFAULT_POLICY, EnginePolicy
from app.services.streak_repository import StreakRepository

logger = logging.getLogger(__name__)

KIND_TASK = "TASK"
KIND_HABIT = "HABIT"


@dataclass(frozen=True)
class CompletionEvent:
    user_id: int
    kind: str
    entity_id: UUID
    occurs_at: int


@dataclass
class TaskCompletionResult:
    """Task completions move only the user streak; milestones belong to habits."""

    task: Task
    new_streak: int
    longest_streak: int


@dataclass
class HabitTickResult:
    habit: Habit
    new_user_streak: int
    longest_streak: int
    new_streak_days: int
    milestone_achieved: Optional[MilestoneAchievement] = None
    milestone_log: Optional[ActivityLog] = None


def complete_task(
    db: Session,
    user_id: int,
    task_id: UUID,
    now: int,
    *,
    policy: EnginePolicy = DEFAULT_POLICY,
) -> TaskCompletionResult:
    """Mark a pending task completed and advance the user's daily streak atomically."""
    repo = StreakRepository(db, policy=policy)
    with repo.with_user_lock(user_id) as user:
        task = repo.get_task_for_update(user_id, task_id)
        if task.status != TASK_PENDING:
            message = "Task is already completed" if task.status == TASK_COMPLETED else "Cannot complete a failed task"
            raise AlreadyTerminalError(message, status=task.status, task_id=str(task_id))

        update = evaluate_streak(
            repo,
            user_id=user_id,
            previous_current=user.current_streak,
            previous_longest=user.longest_streak,
            now=now,
            exclude_ids=(task.id,),
            previous_run_streak=user.previous_run_streak or 0,
            previous_run_end_day=user.previous_run_end_day or 0,
        )

        task.status = TASK_COMPLETED
        task.completed_at = now

        user.current_streak = update.current_streak
        user.longest_streak = update.longest_streak
        user.previous_run_streak = update.previous_run_streak
        user.previous_run_end_day = update.previous_run_end_day
        user.total_tasks_completed = (user.total_tasks_completed or 0) + 1

        repo.record_activity(
            user_id,
            "task_completed",
            {
                "task_id": str(task.id),
                "current_streak": update.current_streak,
                "longest_streak": update.longest_streak,
                "first_completion_today": update.first_completion_today,
                "backfilled": update.backfilled,
            },
            occurred_at=now,
            reason="Task marked completed",
        )

    logger.info(
        "Task %s completed by user %s (streak=%s, longest=%s)",
        task_id,
        user_id,
        update.current_streak,
        update.longest_streak,
    )
    return TaskCompletionResult(
        task=task,
        new_streak=update.current_streak,
        longest_streak=update.longest_streak,
    )


def tick_habit(
    db: Session,
    user_id: int,
    habit_id: UUID,
    now: int,
    *,
    policy: EnginePolicy = DEFAULT_POLICY,
) -> HabitTickResult:
    """Record a habit tick if its cadence allows it, updating habit and user streaks together."""
    repo = StreakRepository(db, policy=policy)
    milestone_log: Optional[ActivityLog] = None
    with repo.with_user_lock(user_id) as user:
        habit = repo.get_habit_for_update(user_id, habit_id)
        decision = check_tick_allowed(
            habit_type=habit.type,
            interval_days=habit.interval_days,
            last_checked_at=habit.last_checked_at,
            now=now,
            policy=policy,
        )

        # Read before last_checked_at moves to ``now``; the previous tick of this
        # habit is still valid evidence, so nothing is excluded.
        update = evaluate_streak(
            repo,
            user_id=user_id,
            previous_current=user.current_streak,
            previous_longest=user.longest_streak,
            now=now,
            previous_run_streak=user.previous_run_streak or 0,
            previous_run_end_day=user.previous_run_end_day or 0,
        )

        streak_days = next_streak_days(habit.streak_days, decision)
        if not decision.continuous and habit.last_checked_at is not None:
            logger.info("Habit %s streak restarted after %sms gap", habit_id, decision.elapsed_ms)

        habit.streak_days = streak_days
        habit.longest_streak = max(habit.longest_streak or 0, streak_days)
        habit.total_completions = (habit.total_completions or 0) + 1
        habit.last_checked_at = now
        if habit.milestones_achieved is None:
            habit.milestones_achieved = []

        milestone = detect_milestone(
            MilestoneSet(habit.milestones_achieved),
            streak_days,
            policy.milestone_thresholds,
        )

        user.current_streak = update.current_streak
        user.longest_streak = update.longest_streak
        user.previous_run_streak = update.previous_run_streak
        user.previous_run_end_day = update.previous_run_end_day
        user.total_habits_completed = (user.total_habits_completed or 0) + 1

        repo.record_activity(
            user_id,
            "habit_ticked",
            {
                "habit_id": str(habit.id),
                "streak_days": streak_days,
                "continuous": decision.continuous,
                "current_streak": update.current_streak,
                "longest_streak": update.longest_streak,
            },
            occurred_at=now,
            reason="Habit ticked",
        )
        if milestone:
            milestone_log = repo.record_activity(
                user_id,
                MILESTONE_ACTION,
                {"habit_id": str(habit.id), "milestone_days": milestone.milestone_days},
                occurred_at=now,
                reason=milestone.message,
            )

    logger.info(
        "Habit %s ticked by user %s (habit_streak=%s, user_streak=%s, milestone=%s)",
        habit_id,
        user_id,
        streak_days,
        update.current_streak,
        milestone.milestone_days if milestone else None,
    )
    return HabitTickResult(
        habit=habit,
        new_user_streak=update.current_streak,
        longest_streak=update.longest_streak,
        new_streak_days=streak_days,
        milestone_achieved=milestone,
        milestone_log=milestone_log,
    )


def process_completion(
    db: Session,
    event: CompletionEvent,
    *,
    policy: EnginePolicy = DEFAULT_POLICY,
) -> Union[TaskCompletionResult, HabitTickResult]:
    if event.kind == KIND_TASK:
        return complete_task(db, event.user_id, event.entity_id, event.occurs_at, policy=policy)
    if event.kind == KIND_HABIT:
        return tick_habit(db, event.user_id, event.entity_id, event.occurs_at, policy=policy)
    raise InvalidEventError(f"Unknown completion kind: {event.kind}", event_kind=event.kind)
