"""Persistence boundary for the streak engine.

``StreakRepository.with_user_lock`` is the only way engine operations touch
User/Task/Habit rows: it opens the transaction, takes the user row with
``SELECT ... FOR UPDATE`` and commits or rolls back as a unit.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.context import bind_user
from app.db.models.activity_log import ActivityLog
from app.db.models.habit import Habit
from app.db.models.task import TASK_COMPLETED, TASK_FAILED, TASK_PENDING, Task
from app.db.models.user import User
from app.services.errors import InternalError, NotFoundError, StreakEngineError, TransactionConflictError
from app.services.streak_policy import DEFAULT_POLICY, EnginePolicy

logger = logging.getLogger(__name__)

# lock_not_available, serialization_failure, deadlock_detected
_CONFLICT_PGCODES = {"55P03", "40001", "40P01"}


def _is_lock_conflict(exc: OperationalError) -> bool:
    pgcode = getattr(exc.orig, "pgcode", None)
    if pgcode in _CONFLICT_PGCODES:
        return True
    return "database is locked" in str(exc.orig).lower()


class StreakRepository:
    def __init__(self, db: Session, *, policy: EnginePolicy = DEFAULT_POLICY) -> None:
        self.db = db
        self.policy = policy

    @contextmanager
    def with_user_lock(self, user_id: int) -> Iterator[User]:
        """Run the block inside one transaction holding an exclusive lock on the user row.

        Commits when the block exits cleanly. Engine validation errors propagate
        unchanged; anything else is rolled back and re-raised as ``InternalError``
        (``TransactionConflictError`` when another transaction held the lock).
        Nothing is retried here.
        """
        with bind_user(user_id):
            try:
                user = self._lock_user(user_id)
                yield user
                self.db.commit()
            except StreakEngineError:
                self.db.rollback()
                raise
            except OperationalError as exc:
                self.db.rollback()
                if _is_lock_conflict(exc):
                    logger.warning("Streak state for user %s is locked by another transaction", user_id)
                    raise TransactionConflictError("Concurrent update in progress, retry later") from exc
                logger.exception("Storage failure while updating user %s", user_id)
                raise InternalError("Internal server error") from exc
            except SQLAlchemyError as exc:
                self.db.rollback()
                logger.exception("Storage failure while updating user %s", user_id)
                raise InternalError("Internal server error") from exc
            except Exception as exc:
                self.db.rollback()
                logger.exception("Unexpected failure while updating user %s", user_id)
                raise InternalError("Internal server error") from exc

    def _lock_user(self, user_id: int) -> User:
        user = (
            self.db.query(User)
            .filter(User.id == user_id)
            .with_for_update(nowait=self.policy.user_lock_nowait)
            .populate_existing()
            .one_or_none()
        )
        if user is None:
            raise NotFoundError("User not found", user_id=user_id)
        return user

    def get_task_for_update(self, user_id: int, task_id: UUID) -> Task:
        task = (
            self.db.query(Task)
            .filter(Task.id == task_id, Task.user_id == user_id)
            .with_for_update()
            .populate_existing()
            .one_or_none()
        )
        if task is None:
            raise NotFoundError("Task not found", task_id=str(task_id))
        return task

    def get_habit_for_update(self, user_id: int, habit_id: UUID) -> Habit:
        habit = (
            self.db.query(Habit)
            .filter(Habit.id == habit_id, Habit.user_id == user_id)
            .with_for_update()
            .populate_existing()
            .one_or_none()
        )
        if habit is None:
            raise NotFoundError("Habit not found", habit_id=str(habit_id))
        return habit

    def has_completion_between(self, user_id: int, start: int, end: int, *, exclude_ids: Iterable[UUID] = ()) -> bool:
        """True if any task completion or habit tick of the user falls in ``[start, end)``."""
        excluded = list(exclude_ids)

        task_query = select(Task.id).where(
            Task.user_id == user_id,
            Task.status == TASK_COMPLETED,
            Task.completed_at >= start,
            Task.completed_at < end,
        )
        habit_query = select(Habit.id).where(
            Habit.user_id == user_id,
            Habit.last_checked_at >= start,
            Habit.last_checked_at < end,
        )
        if excluded:
            task_query = task_query.where(Task.id.notin_(excluded))
            habit_query = habit_query.where(Habit.id.notin_(excluded))

        if self.db.scalar(select(task_query.exists())):
            return True
        return bool(self.db.scalar(select(habit_query.exists())))

    def latest_completion_at(self, user_id: int, *, exclude_ids: Iterable[UUID] = ()) -> Optional[int]:
        """Epoch millis of the user's most recent task completion or habit tick, if any."""
        excluded = list(exclude_ids)

        task_query = select(func.max(Task.completed_at)).where(
            Task.user_id == user_id,
            Task.status == TASK_COMPLETED,
        )
        habit_query = select(func.max(Habit.last_checked_at)).where(Habit.user_id == user_id)
        if excluded:
            task_query = task_query.where(Task.id.notin_(excluded))
            habit_query = habit_query.where(Habit.id.notin_(excluded))

        stamps = [value for value in (self.db.scalar(task_query), self.db.scalar(habit_query)) if value is not None]
        return max(stamps) if stamps else None

    def stale_pending_task_ids(self, user_id: int, cutoff: int) -> List[UUID]:
        rows = (
            self.db.query(Task.id)
            .filter(Task.user_id == user_id, Task.status == TASK_PENDING, Task.created_at < cutoff)
            .all()
        )
        return [row[0] for row in rows]

    def fail_stale_tasks(self, user_id: int, cutoff: int) -> int:
        # Scoped to PENDING so a task completed by another transaction is never failed.
        return (
            self.db.query(Task)
            .filter(Task.user_id == user_id, Task.status == TASK_PENDING, Task.created_at < cutoff)
            .update({Task.status: TASK_FAILED, Task.is_missed: True}, synchronize_session="fetch")
        )

    def list_tasks(self, user_id: int) -> List[Task]:
        return (
            self.db.query(Task)
            .filter(Task.user_id == user_id)
            .order_by(Task.created_at.desc())
            .all()
        )

    def record_activity(
        self,
        user_id: int,
        action_type: str,
        payload: Dict[str, Any],
        *,
        occurred_at: int,
        reason: Optional[str] = None,
    ) -> ActivityLog:
        log = ActivityLog(
            user_id=user_id,
            action_type=action_type,
            action_payload=payload,
            reason=reason,
            occurred_at=occurred_at,
        )
        self.db.add(log)
        return log
