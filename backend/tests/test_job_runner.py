from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from opsdesk.core.clock import as_utc
from opsdesk.db.models.activity_log import TaskActivityLog
from opsdesk.db.models.recurring_task import RecurringTask
from opsdesk.db.models.task import Task
from opsdesk.db.models.user import User
from opsdesk.services import job_runner
from opsdesk.services.job_runner import run_recurring_generation

NOW = datetime(2025, 1, 31, 10, 0, tzinfo=timezone.utc)


def _session():
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

    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    User.__table__.create(bind=engine)
    RecurringTask.__table__.create(bind=engine)
    Task.__table__.create(bind=engine)
    TaskActivityLog.__table__.create(bind=engine)
    return TestingSession


def _seed_user(db_session):
    session = db_session()
    try:
        user_id = uuid4()
        session.add(User(id=user_id))
        session.commit()
        return user_id
    finally:
        session.close()


def _seed_recurring(db_session, **kwargs):
    session = db_session()
    try:
        values = {"name": "Publish newsletter", "frequency": "daily", "is_active": True}
        values.update(kwargs)
        recurring = RecurringTask(**values)
        session.add(recurring)
        session.commit()
        session.refresh(recurring)
        return recurring.id
    finally:
        session.close()


def test_unscheduled_recurring_task_gets_next_generation_only():
    Session = _session()
    user_id = _seed_user(Session)
    recurring_id = _seed_recurring(Session, frequency="weekly", day_of_week=1, created_by=user_id)

    session = Session()
    result = run_recurring_generation(session, now=NOW)

    assert result.processed == 1
    assert result.scheduled == 1
    assert result.generated == 0
    recurring = session.get(RecurringTask, recurring_id)
    assert as_utc(recurring.next_generation_at) == NOW + timedelta(weeks=1)
    assert session.query(Task).count() == 0
    session.close()


def test_due_recurring_task_generates_instance_and_advances(monkeypatch):
    Session = _session()
    user_id = _seed_user(Session)
    recurring_id = _seed_recurring(
        Session,
        created_by=user_id,
        client="Acme",
        priority="high",
        next_generation_at=NOW - timedelta(hours=1),
    )
    monkeypatch.setattr(job_runner, "local_today", lambda: NOW.date())

    session = Session()
    result = run_recurring_generation(session, now=NOW)

    assert result.generated == 1
    task = session.query(Task).one()
    assert task.title == "Publish newsletter"
    assert task.recurring_task_id == recurring_id
    assert task.user_id == user_id
    assert task.client == "Acme"
    assert task.priority == "high"
    assert task.due_date == NOW.date()
    assert task.metadata_json == {"source": "recurring"}

    recurring = session.get(RecurringTask, recurring_id)
    assert as_utc(recurring.last_generated_at) == NOW
    assert as_utc(recurring.next_generation_at) == NOW + timedelta(days=1)

    logs = session.query(TaskActivityLog).all()
    assert [log.action_type for log in logs] == ["recurring_task_generated"]
    assert logs[0].action_payload["task_id"] == str(task.id)

    again = run_recurring_generation(session, now=NOW)
    assert again.generated == 0
    assert again.skipped == 1
    session.close()


def test_monthly_generation_clamps_to_month_end():
    Session = _session()
    user_id = _seed_user(Session)
    recurring_id = _seed_recurring(
        Session,
        frequency="monthly",
        day_of_month=31,
        created_by=user_id,
        next_generation_at=NOW,
    )

    session = Session()
    run_recurring_generation(session, now=NOW)

    recurring = session.get(RecurringTask, recurring_id)
    assert as_utc(recurring.next_generation_at) == datetime(2025, 2, 28, 10, 0, tzinfo=timezone.utc)
    session.close()


def test_force_generates_before_due_time():
    Session = _session()
    user_id = _seed_user(Session)
    future = NOW + timedelta(days=3)
    _seed_recurring(Session, created_by=user_id, next_generation_at=future)

    session = Session()
    assert run_recurring_generation(session, now=NOW).skipped == 1
    assert run_recurring_generation(session, now=NOW, force=True).generated == 1
    assert session.query(Task).count() == 1
    session.close()


def test_paused_unknown_and_orphaned_definitions_are_left_alone():
    Session = _session()
    user_id = _seed_user(Session)
    _seed_recurring(Session, created_by=user_id, is_active=False, next_generation_at=NOW - timedelta(days=1))
    _seed_recurring(Session, created_by=user_id, frequency="quarterly", next_generation_at=NOW - timedelta(days=1))
    _seed_recurring(Session, created_by=None, next_generation_at=NOW - timedelta(days=1))

    session = Session()
    result = run_recurring_generation(session, now=NOW)

    assert result.processed == 2
    assert result.skipped == 2
    assert result.generated == 0
    assert session.query(Task).count() == 0
    session.close()


def test_generation_can_target_specific_definitions():
    Session = _session()
    user_id = _seed_user(Session)
    first = _seed_recurring(Session, created_by=user_id, next_generation_at=NOW - timedelta(minutes=5))
    _seed_recurring(Session, created_by=user_id, next_generation_at=NOW - timedelta(minutes=5))

    session = Session()
    result = run_recurring_generation(session, now=NOW, recurring_task_ids=[first, first])

    assert result.processed == 1
    assert result.generated == 1
    assert session.query(Task).one().recurring_task_id == first
    session.close()


def test_failure_for_one_definition_does_not_stop_the_batch(monkeypatch):
    Session = _session()
    user_id = _seed_user(Session)
    broken = _seed_recurring(Session, name="Broken", created_by=user_id, next_generation_at=NOW - timedelta(hours=1))
    healthy = _seed_recurring(Session, name="Healthy", created_by=user_id, next_generation_at=NOW - timedelta(hours=1))

    original = job_runner.process_recurring_task

    def flaky(db, recurring, **kwargs):
        if recurring.id == broken:
            raise RuntimeError("boom")
        return original(db, recurring, **kwargs)

    monkeypatch.setattr(job_runner, "process_recurring_task", flaky)

    session = Session()
    result = run_recurring_generation(session, now=NOW)

    assert result.failed == 1
    assert result.processed == 1
    assert result.generated == 1
    assert session.query(Task).one().recurring_task_id == healthy
    assert session.get(RecurringTask, broken).last_generated_at is None
    session.close()
