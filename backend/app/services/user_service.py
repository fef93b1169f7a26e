"""Helpers for working with users."""
from __future__ import annotations

from sqlalchemy.orm import Session

from app.db.models.user import User
from app.services.errors import NotFoundError


def get_user_or_raise(db: Session, user_id: int) -> User:
    """Fetch a user without locking; raises ``NotFoundError`` when absent."""
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found", user_id=user_id)
    return user
