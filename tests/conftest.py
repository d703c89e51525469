import os

os.environ.setdefault("TUTORLEDGER_DATABASE_URL", "sqlite://")
os.environ.setdefault("TUTORLEDGER_SCHEDULER_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tutorledger.core.database import Base, get_db
from tutorledger.models import AccountState, Content, PeriodKey, Student, ViewCreditCode


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_student(db):
    def _make(student_id=1, *, sessions=0, state=AccountState.ACTIVE, legacy=None, name=None):
        student = Student(
            student_id=student_id,
            name=name or f"Student {student_id}",
            grade="Senior 2",
            main_center="Maadi",
            account_state=state,
            sessions_remaining=sessions,
            legacy_progress=legacy,
        )
        db.add(student)
        db.commit()
        return student

    return _make


@pytest.fixture
def make_content(db):
    def _make(title="Week 3 recording", *, period_key=None, free=False):
        content = Content(
            title=title,
            period_key=PeriodKey.parse(period_key).encode() if period_key else None,
            free=free,
        )
        db.add(content)
        db.commit()
        return content

    return _make


@pytest.fixture
def make_view_code(db):
    def _make(code="12345ABcd", *, views=1, enabled=True):
        record = ViewCreditCode(code=code, remaining_views=views, enabled=enabled)
        db.add(record)
        db.commit()
        return record

    return _make


@pytest.fixture
def client(db):
    from tutorledger.main import app

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
