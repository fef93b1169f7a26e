from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.routes import habit as habit_routes
from app.core.config import settings
from app.db.deps import get_db
from app.db.models.activity_log import ActivityLog
from app.db.models.habit import Habit
from app.db.models.task import Task
from app.db.models.user import User
from app.main import app

DAY_MS = 86_400_000
HOUR_MS = 3_600_000
MINUTE_MS = 60_000
DAY = 19_700 * DAY_MS
NOW = DAY + 8 * HOUR_MS


class _Clock:
    def __init__(self, value: int):
        self.value = value

    def __call__(self) -> int:
        return self.value


@pytest.fixture()
def client(monkeypatch):
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_fk(conn, record):  # pragma: no cover
        cursor = conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    User.__table__.create(bind=engine)
    Task.__table__.create(bind=engine)
    Habit.__table__.create(bind=engine)
    ActivityLog.__table__.create(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    clock = _Clock(NOW)
    app.dependency_overrides[get_db] = override_get_db
    monkeypatch.setattr(habit_routes, "now_ms", clock)
    monkeypatch.setattr(settings, "notifications_enabled", False)
    with TestClient(app) as test_client:
        yield test_client, TestingSessionLocal, clock
    app.dependency_overrides.clear()


def _seed_user(session_factory) -> int:
    session = session_factory()
    try:
        user = User()
        session.add(user)
        session.flush()
        user_id = user.id
        session.commit()
        return user_id
    finally:
        session.close()


def _seed_habit(session_factory, user_id: int, **kwargs):
    session = session_factory()
    try:
        habit_id = uuid4()
        session.add(Habit(id=habit_id, user_id=user_id, name="Meditate", created_at=DAY - 30 * DAY_MS, **kwargs))
        session.commit()
        return habit_id
    finally:
        session.close()


def _action_types(session_factory, user_id: int) -> list[str]:
    session = session_factory()
    try:
        rows = (
            session.query(ActivityLog)
            .filter(ActivityLog.user_id == user_id)
            .order_by(ActivityLog.occurred_at, ActivityLog.action_type)
            .all()
        )
        return [row.action_type for row in rows]
    finally:
        session.close()


def test_tick_then_retick_conflicts_with_retry_after(client):
    test_client, session_factory, clock = client
    user_id = _seed_user(session_factory)
    habit_id = _seed_habit(session_factory, user_id)

    resp = test_client.post(f"/habits/{habit_id}/tick", json={"user_id": user_id})
    assert resp.status_code == 200
    body = resp.json()
    assert body["new_streak_days"] == 1
    assert body["new_user_streak"] == 1
    assert body["habit"]["last_checked_at"] == NOW
    assert body["milestone_achieved"] is None

    clock.value = NOW + 10 * MINUTE_MS
    resp = test_client.post(f"/habits/{habit_id}/tick", json={"user_id": user_id})
    assert resp.status_code == 409
    assert resp.json()["detail"]["error"] == "CadenceNotElapsed"
    assert int(resp.headers["Retry-After"]) == (22 * HOUR_MS - 10 * MINUTE_MS) // 1000

    clock.value = NOW + 23 * HOUR_MS
    resp = test_client.post(f"/habits/{habit_id}/tick", json={"user_id": user_id})
    assert resp.status_code == 200
    assert resp.json()["new_streak_days"] == 2


def test_unknown_habit_is_404(client):
    test_client, session_factory, _ = client
    user_id = _seed_user(session_factory)

    resp = test_client.post(f"/habits/{uuid4()}/tick", json={"user_id": user_id})

    assert resp.status_code == 404
    assert resp.json()["detail"] == {"error": "NotFound", "message": "Habit not found"}


def test_milestone_reported_and_notification_skipped_when_disabled(client):
    test_client, session_factory, _ = client
    user_id = _seed_user(session_factory)
    habit_id = _seed_habit(session_factory, user_id, streak_days=6, longest_streak=6, last_checked_at=NOW - DAY_MS)

    resp = test_client.post(f"/habits/{habit_id}/tick", json={"user_id": user_id})

    assert resp.status_code == 200
    body = resp.json()
    assert body["new_streak_days"] == 7
    assert body["milestone_achieved"] == {"milestone_days": 7, "message": "7-day streak achieved!"}
    assert body["habit"]["milestones_achieved"] == [7]

    session = session_factory()
    try:
        notification = (
            session.query(ActivityLog)
            .filter(ActivityLog.user_id == user_id, ActivityLog.action_type == "notification_milestone")
            .one()
        )
        assert notification.action_payload["result"]["status"] == "skipped"
        assert notification.action_payload["milestone_days"] == 7
    finally:
        session.close()
    assert "milestone_achieved" in _action_types(session_factory, user_id)
