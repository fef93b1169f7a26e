"""Daily task summary ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import BigInteger, Column, ForeignKey, Integer, Numeric, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base
from app.db.types import BigIntPK, JSONBCompat


class DailyTaskSummary(Base):
    __tablename__ = "daily_task_summaries"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_daily_task_summaries_user_date"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    # UTC midnight (epoch millis) of the summarised day.
    date = Column(BigInteger, nullable=False)
    total_tasks = Column(Integer, nullable=False, default=0)
    completed_tasks = Column(Integer, nullable=False, default=0)
    failed_tasks = Column(Integer, nullable=False, default=0)
    completion_rate = Column(Numeric(5, 2), nullable=False, default=0)
    tasks_data = Column(JSONBCompat, nullable=False, default=list)
    created_at = Column(BigInteger, nullable=False)
