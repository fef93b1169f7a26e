from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.routes import jobs as jobs_routes
from app.core.config import settings
from app.db.deps import get_db
from app.db.models.activity_log import ActivityLog
from app.db.models.daily_task_summary import DailyTaskSummary
from app.db.models.habit import Habit
from app.db.models.task import Task
from app.db.models.user import User
from app.main import app

DAY_MS = 86_400_000
NOW = 19_700 * DAY_MS + 60_000


def _build_session_factory():
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
    DailyTaskSummary.__table__.create(bind=engine)
    return TestingSessionLocal


@pytest.fixture()
def client(monkeypatch):
    TestingSessionLocal = _build_session_factory()

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    monkeypatch.setattr(settings, "debug", True)
    monkeypatch.setattr(jobs_routes, "now_ms", lambda: NOW)
    with TestClient(app) as test_client:
        yield test_client, TestingSessionLocal
    app.dependency_overrides.clear()


def _seed_user_with_stale_task(session_factory) -> int:
    session = session_factory()
    try:
        user = User()
        session.add(user)
        session.flush()
        session.add(Task(id=uuid4(), user_id=user.id, title="Old", created_at=NOW - 2 * DAY_MS))
        session.add(Task(id=uuid4(), user_id=user.id, title="Yesterday", created_at=NOW - DAY_MS // 2))
        user_id = user.id
        session.commit()
        return user_id
    finally:
        session.close()


def test_jobs_config_and_run_now(client):
    test_client, session_factory = client
    user_id = _seed_user_with_stale_task(session_factory)

    resp = test_client.get("/jobs")
    assert resp.status_code == 200
    assert "scheduler_enabled" in resp.json()
    assert resp.json()["reset"]["interval_ms"] == DAY_MS

    run_resp = test_client.post("/jobs/run-now", json={"job": "daily_reset"})
    assert run_resp.status_code == 200
    data = run_resp.json()
    assert data["users_processed"] == 1
    assert data["resets_applied"] == 1
    assert data["tasks_failed"] == 1
    assert data["request_id"]

    single = test_client.post("/jobs/run-now", json={"job": "daily_reset", "user_id": user_id}).json()
    assert single["resets_applied"] == 0

    summary = test_client.post("/jobs/run-now", json={"job": "daily_summary"}).json()
    assert summary["users_processed"] == 1


def test_run_now_for_unknown_user_is_404(client):
    test_client, _ = client
    resp = test_client.post("/jobs/run-now", json={"job": "daily_reset", "user_id": 4242})
    assert resp.status_code == 404


def test_jobs_run_now_forbidden_in_prod(monkeypatch):
    TestingSessionLocal = _build_session_factory()

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    monkeypatch.setattr(settings, "debug", False)
    with TestClient(app) as test_client:
        resp = test_client.post("/jobs/run-now", json={"job": "daily_reset"})
        assert resp.status_code == 403
    app.dependency_overrides.clear()
