"""Per-user snapshots of the previous day's tasks."""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.clock import day_start
from app.core.config import ONE_DAY_MS
from app.db.models.daily_task_summary import DailyTaskSummary
from app.db.models.task import TASK_COMPLETED, Task

logger = logging.getLogger(__name__)


@dataclass
class _UserDay:
    total: int = 0
    completed: int = 0
    failed: int = 0
    tasks: List[Dict[str, Any]] = field(default_factory=list)


def completion_rate(completed: int, total: int) -> Decimal:
    if not total:
        return Decimal("0.00")
    return (Decimal(completed) * 100 / Decimal(total)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def record_daily_summaries(db: Session, now: int) -> int:
    """Upsert one summary row per user for tasks created during the previous UTC day.

    Tasks still pending count as failed: the day they belonged to is over.
    Returns the number of users summarised.
    """
    today_start = day_start(now)
    yesterday_start = today_start - ONE_DAY_MS

    tasks = (
        db.query(Task)
        .filter(Task.created_at >= yesterday_start, Task.created_at < today_start)
        .order_by(Task.user_id, Task.created_at)
        .all()
    )

    per_user: Dict[int, _UserDay] = defaultdict(_UserDay)
    for task in tasks:
        day = per_user[task.user_id]
        day.total += 1
        if task.status == TASK_COMPLETED:
            day.completed += 1
        else:
            day.failed += 1
        day.tasks.append(
            {
                "id": str(task.id),
                "title": task.title,
                "description": task.description,
                "status": task.status,
                "created_at": task.created_at,
                "completed_at": task.completed_at,
            }
        )

    try:
        for user_id, day in per_user.items():
            summary = (
                db.query(DailyTaskSummary)
                .filter(DailyTaskSummary.user_id == user_id, DailyTaskSummary.date == yesterday_start)
                .one_or_none()
            )
            if summary is None:
                summary = DailyTaskSummary(user_id=user_id, date=yesterday_start, created_at=now)
                db.add(summary)
            summary.total_tasks = day.total
            summary.completed_tasks = day.completed
            summary.failed_tasks = day.failed
            summary.completion_rate = completion_rate(day.completed, day.total)
            summary.tasks_data = day.tasks
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Saved daily task summaries for %s user(s) (date=%s)", len(per_user), yesterday_start)
    return len(per_user)


def list_summaries(db: Session, user_id: int, *, limit: int = 7) -> List[DailyTaskSummary]:
    return (
        db.query(DailyTaskSummary)
        .filter(DailyTaskSummary.user_id == user_id)
        .order_by(DailyTaskSummary.date.desc())
        .limit(limit)
        .all()
    )


def get_yesterday_summary(db: Session, user_id: int, now: int) -> Optional[DailyTaskSummary]:
    yesterday_start = day_start(now) - ONE_DAY_MS
    return (
        db.query(DailyTaskSummary)
        .filter(DailyTaskSummary.user_id == user_id, DailyTaskSummary.date == yesterday_start)
        .one_or_none()
    )
