"""Habit ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Column, ForeignKey, Index, Integer, String, Text, text as sa_text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.ext.mutable import MutableList

from app.db.base import Base
from app.db.types import BigIntPK, JSONBCompat

HABIT_DAILY = "DAILY"
HABIT_WEEKLY = "WEEKLY"
HABIT_CUSTOM_INTERVAL = "CUSTOM_INTERVAL"
HABIT_TYPES = (HABIT_DAILY, HABIT_WEEKLY, HABIT_CUSTOM_INTERVAL)


class Habit(Base):
    __tablename__ = "habits"
    __table_args__ = (
        Index("ix_habits_user_id", "user_id"),
        Index("ix_habits_user_last_checked", "user_id", "last_checked_at"),
        CheckConstraint(
            "type IN ('DAILY', 'WEEKLY', 'CUSTOM_INTERVAL')",
            name="ck_habits_valid_type",
        ),
        CheckConstraint("interval_days > 0", name="ck_habits_valid_interval"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(Text, nullable=False)
    type = Column(String(20), nullable=False, default=HABIT_DAILY)
    interval_days = Column(Integer, nullable=False, default=1, server_default=sa_text("1"))
    streak_days = Column(Integer, nullable=False, default=0, server_default=sa_text("0"))
    longest_streak = Column(Integer, nullable=False, default=0, server_default=sa_text("0"))
    # Epoch millis; null until the first tick.
    last_checked_at = Column(BigInteger, nullable=True)
    total_completions = Column(Integer, nullable=False, default=0, server_default=sa_text("0"))
    milestones_achieved = Column(MutableList.as_mutable(JSONBCompat), nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True, server_default=sa_text("true"))
    created_at = Column(BigInteger, nullable=False)
