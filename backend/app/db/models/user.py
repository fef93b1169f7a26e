"""User ORM model."""
from __future__ import annotations

from sqlalchemy import BigInteger, CheckConstraint, Column, DateTime, Integer, func, text as sa_text

from app.db.base import Base
from app.db.types import BigIntPK


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("current_streak >= 0", name="ck_users_current_streak_non_negative"),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    current_streak = Column(Integer, nullable=False, default=0, server_default=sa_text("0"))
    longest_streak = Column(Integer, nullable=False, default=0, server_default=sa_text("0"))
    total_tasks_completed = Column(Integer, nullable=False, default=0, server_default=sa_text("0"))
    total_habits_completed = Column(Integer, nullable=False, default=0, server_default=sa_text("0"))
    # Epoch millis of the most recent daily reset sweep.
    last_task_reset = Column(BigInteger, nullable=False, default=0, server_default=sa_text("0"))
    # Run broken by the latest restart, so a late completion for the gap day can rejoin it.
    previous_run_streak = Column(Integer, nullable=False, default=0, server_default=sa_text("0"))
    # UTC midnight (epoch millis) of that run's last day; 0 when none.
    previous_run_end_day = Column(BigInteger, nullable=False, default=0, server_default=sa_text("0"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
