"""Declarative base plus the streak engine models, loaded for metadata discovery."""

from app.db.base import Base
from app.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
