from app.db.base import Base
from app.db import models  # noqa: F401  ensure models are loaded


def test_metadata_contains_core_tables() -> None:
    table_names = set(Base.metadata.tables.keys())
    expected = {
        "users",
        "tasks",
        "habits",
        "activity_log",
        "daily_task_summaries",
    }

    assert expected.issubset(table_names)
