"""Batch job runners for the daily reset sweep and task summaries."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from app.db.models.task import TASK_PENDING, Task
from app.services.daily_reset import run_daily_reset_sweep
from app.services.daily_summary import record_daily_summaries
from app.services.errors import StreakEngineError
from app.services.streak_policy import DEFAULT_POLICY, EnginePolicy


logger = logging.getLogger(__name__)


@dataclass
class JobRunResult:
    users_processed: int
    resets_applied: int
    tasks_failed: int
    users_failed: int = 0


def _users_with_pending_tasks(db: Session) -> List[int]:
    rows = (
        db.query(Task.user_id)
        .filter(Task.status == TASK_PENDING)
        .distinct()
        .all()
    )
    return [row[0] for row in rows]


def run_daily_reset_for_user(
    db: Session,
    user_id: int,
    now: int,
    *,
    policy: EnginePolicy = DEFAULT_POLICY,
) -> tuple[bool, int]:
    result = run_daily_reset_sweep(db, user_id, now, policy=policy)
    return result.reset_applied, result.failed_count


def run_daily_reset_for_all_users(
    db: Session,
    now: int,
    *,
    user_ids: Optional[Iterable[int]] = None,
    policy: EnginePolicy = DEFAULT_POLICY,
) -> JobRunResult:
    """Sweep every user with pending tasks; one user's failure never blocks the rest."""
    ids = _normalize_user_ids(user_ids, db)
    users_processed = 0
    resets_applied = 0
    tasks_failed = 0
    users_failed = 0
    for uid in ids:
        try:
            applied, failed = run_daily_reset_for_user(db, uid, now, policy=policy)
        except StreakEngineError:
            users_failed += 1
            logger.exception("Daily reset failed for user %s", uid)
            continue
        users_processed += 1
        if applied:
            resets_applied += 1
        tasks_failed += failed
    return JobRunResult(
        users_processed=users_processed,
        resets_applied=resets_applied,
        tasks_failed=tasks_failed,
        users_failed=users_failed,
    )


def run_daily_summary_job(db: Session, now: int) -> int:
    return record_daily_summaries(db, now)


def _normalize_user_ids(user_ids: Optional[Iterable[int]], db: Session) -> List[int]:
    if user_ids is None:
        ids = _users_with_pending_tasks(db)
    else:
        ids = list(dict.fromkeys(user_ids))
    return ids
