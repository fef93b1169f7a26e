"""Task ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Column, ForeignKey, Index, String, Text, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base
from app.db.types import BigIntPK

TASK_PENDING = "PENDING"
TASK_COMPLETED = "COMPLETED"
TASK_FAILED = "FAILED"
TASK_STATUSES = (TASK_PENDING, TASK_COMPLETED, TASK_FAILED)
TERMINAL_TASK_STATUSES = (TASK_COMPLETED, TASK_FAILED)


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_user_id", "user_id"),
        Index("ix_tasks_user_status_created", "user_id", "status", "created_at"),
        Index("ix_tasks_user_completed_at", "user_id", "completed_at"),
        CheckConstraint(
            "status IN ('PENDING', 'COMPLETED', 'FAILED')",
            name="ck_tasks_valid_status",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=TASK_PENDING, server_default=sa_text("'PENDING'"))
    # Epoch millis.
    created_at = Column(BigInteger, nullable=False)
    completed_at = Column(BigInteger, nullable=True)
    is_missed = Column(Boolean, nullable=False, default=False, server_default=sa_text("false"))

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_TASK_STATUSES
