"""Shared fixtures: in-memory SQLite, fake push transport, API client."""

import os

# Must be set before app.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  (registers tables on Base.metadata)
from app.core.errors import FcmError
from app.db.base import Base
from app.db.session import get_db
from app.models.assignment import Assignment
from app.models.device_token import DeviceToken
from app.models.user import User
from app.services.fcm import BatchResponse, SendResponse


class FakeTransport:
    """Records every multicast message; tokens in `failing` come back as UNREGISTERED."""

    def __init__(self, failing=(), error: Exception | None = None):
        self.failing = set(failing)
        self.error = error
        self.messages = []

    def send_each_for_multicast(self, message):
        self.messages.append(message)
        if self.error is not None:
            raise self.error
        responses = []
        for i, token in enumerate(message.tokens):
            if token in self.failing:
                responses.append(SendResponse(success=False, error=FcmError("UNREGISTERED", "gone", 404)))
            else:
                responses.append(SendResponse(success=True, message_id=f"projects/p/messages/{i}"))
        return BatchResponse(responses=responses)


@pytest.fixture
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)

    # pysqlite only honours SAVEPOINT when SQLAlchemy, not the driver, emits BEGIN
    @event.listens_for(eng, "connect")
    def _no_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(eng, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def add_assignment(db):
    def _add(due_date: str, subject: str = "math", content: str = "p.10-12") -> Assignment:
        row = Assignment(subject=subject, content=content, due_date=due_date, created_by="teacher-1")
        db.add(row)
        db.commit()
        return row

    return _add


@pytest.fixture
def add_token(db):
    def _add(user_id: str, token: str) -> DeviceToken:
        if db.get(User, user_id) is None:
            db.add(User(id=user_id))
            db.flush()
        row = DeviceToken(user_id=user_id, token=token)
        db.add(row)
        db.commit()
        return row

    return _add


@pytest.fixture
def client(db):
    from app.main import app

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def fake_transport():
    return FakeTransport


@pytest.fixture
def lock_token_deletes(db):
    """Make the database itself refuse DELETE of the given device token (as a lock or constraint would)."""

    def _lock(token: str) -> None:
        db.execute(
            text(
                "CREATE TRIGGER lock_token_delete BEFORE DELETE ON device_tokens "
                f"WHEN OLD.token = '{token}' BEGIN SELECT RAISE(ABORT, 'token row is locked'); END"
            )
        )
        db.commit()

    return _lock
