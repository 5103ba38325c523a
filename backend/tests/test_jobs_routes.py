from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from opsdesk.api.routes import jobs as jobs_routes
from opsdesk.db.deps import get_db
from opsdesk.db.models.activity_log import TaskActivityLog
from opsdesk.db.models.recurring_task import RecurringTask
from opsdesk.db.models.task import Task
from opsdesk.db.models.user import User
from opsdesk.main import app


def _session_factory():
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
    RecurringTask.__table__.create(bind=engine)
    Task.__table__.create(bind=engine)
    TaskActivityLog.__table__.create(bind=engine)
    return TestingSessionLocal


def _override(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    return override_get_db


@pytest.fixture()
def client(monkeypatch):
    TestingSessionLocal = _session_factory()
    app.dependency_overrides[get_db] = _override(TestingSessionLocal)
    monkeypatch.setattr(jobs_routes.settings, "debug", True)
    with TestClient(app) as test_client:
        yield test_client, TestingSessionLocal
    app.dependency_overrides.clear()


def _seed_due_recurring(session_factory):
    session = session_factory()
    try:
        user_id = uuid4()
        session.add(User(id=user_id))
        session.flush()
        recurring = RecurringTask(
            name="Check analytics",
            frequency="weekly",
            is_active=True,
            created_by=user_id,
            next_generation_at=datetime.now(timezone.utc) - timedelta(hours=2),
        )
        session.add(recurring)
        session.commit()
        return recurring.id
    finally:
        session.close()


def test_jobs_config_and_run_now(client):
    test_client, session_factory = client
    _seed_due_recurring(session_factory)

    resp = test_client.get("/jobs")
    assert resp.status_code == 200
    config = resp.json()
    assert "scheduler_enabled" in config
    assert config["schedule"]["recurring_tasks_interval_minutes"] >= 1

    run_resp = test_client.post("/jobs/run-now", json={"job": "recurring_tasks"})
    assert run_resp.status_code == 200
    data = run_resp.json()
    assert data["processed"] == 1
    assert data["generated"] == 1
    assert data["request_id"]

    with session_factory() as db:
        assert db.query(Task).count() == 1


def test_run_now_for_single_definition(client):
    test_client, session_factory = client
    recurring_id = _seed_due_recurring(session_factory)
    _seed_due_recurring(session_factory)

    resp = test_client.post("/jobs/run-now", json={"recurring_task_id": str(recurring_id), "force": True})

    assert resp.status_code == 200
    assert resp.json()["generated"] == 1

    missing = test_client.post("/jobs/run-now", json={"recurring_task_id": str(uuid4())})
    assert missing.status_code == 404


def test_jobs_run_now_forbidden_in_prod(monkeypatch):
    app.dependency_overrides[get_db] = _override(_session_factory())
    monkeypatch.setattr(jobs_routes.settings, "debug", False)
    with TestClient(app) as test_client:
        resp = test_client.post("/jobs/run-now", json={"job": "recurring_tasks"})
        assert resp.status_code == 403
    app.dependency_overrides.clear()
