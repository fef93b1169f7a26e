"""Daily reset sweep: fail pending tasks that outlived their day."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from sqlalchemy.orm import Session

from app.core.clock import next_utc_midnight
from app.db.models.task import TASK_COMPLETED, TASK_FAILED, TASK_PENDING, Task
from app.services.streak_policy import DEFAULT_POLICY, EnginePolicy
from app.services.streak_repository import StreakRepository

logger = logging.getLogger(__name__)


@dataclass
class DailyResetResult:
    failed_count: int
    reset_applied: bool
    next_reset_time: int
    tasks: List[Task] = field(default_factory=list)
    total_pending: int = 0
    total_completed: int = 0
    total_failed: int = 0


def reset_cutoff(last_task_reset: int, now: int, policy: EnginePolicy = DEFAULT_POLICY) -> int:
    """Tasks created before this instant are considered missed.

    The base is the later of the previous reset and one interval ago, so a user
    returning after a long absence does not keep ancient tasks alive.
    """
    reset_base = max(last_task_reset, now - policy.reset_interval_ms)
    return min(reset_base - policy.reset_grace_period_ms, now)


def is_reset_due(last_task_reset: int, now: int, policy: EnginePolicy = DEFAULT_POLICY) -> bool:
    return now - last_task_reset >= policy.reset_interval_ms


def run_daily_reset_sweep(
    db: Session,
    user_id: int,
    now: int,
    *,
    policy: EnginePolicy = DEFAULT_POLICY,
) -> DailyResetResult:
    """Fail stale pending tasks at most once per reset interval.

    Within the interval the call is a read-only no-op that still returns the
    user's tasks. Failing a task never touches streaks or counters.
    """
    repo = StreakRepository(db, policy=policy)
    failed_count = 0
    reset_applied = False

    with repo.with_user_lock(user_id) as user:
        last_reset = user.last_task_reset or 0
        if is_reset_due(last_reset, now, policy):
            cutoff = reset_cutoff(last_reset, now, policy)
            stale_ids = repo.stale_pending_task_ids(user_id, cutoff)
            failed_count = repo.fail_stale_tasks(user_id, cutoff) if stale_ids else 0
            user.last_task_reset = now
            reset_applied = True

            repo.record_activity(
                user_id,
                "daily_reset_applied",
                {
                    "failed_count": failed_count,
                    "failed_task_ids": [str(task_id) for task_id in stale_ids],
                    "cutoff": cutoff,
                    "previous_reset": last_reset,
                },
                occurred_at=now,
                reason="Daily reset sweep",
            )
            logger.info(
                "Daily reset for user %s failed %s task(s) (cutoff=%s, previous_reset=%s)",
                user_id,
                failed_count,
                cutoff,
                last_reset,
            )
        else:
            logger.debug("Daily reset for user %s skipped; last reset at %s", user_id, last_reset)

        tasks = repo.list_tasks(user_id)

    return DailyResetResult(
        failed_count=failed_count,
        reset_applied=reset_applied,
        next_reset_time=next_utc_midnight(now),
        tasks=tasks,
        total_pending=sum(1 for task in tasks if task.status == TASK_PENDING),
        total_completed=sum(1 for task in tasks if task.status == TASK_COMPLETED),
        total_failed=sum(1 for task in tasks if task.status == TASK_FAILED),
    )
