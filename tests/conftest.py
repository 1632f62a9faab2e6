"""
Shared fixtures for the request workflow test suite.

Each test gets its own file-backed SQLite database so that separate sessions
(and threads) see each other's commits the way they would on PostgreSQL.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./.pytest-hr-requests.db")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("APP_ENV", "test")

from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from hr_requests.db.db import engine_options
from hr_requests.db.immutability import register_immutability_listeners
from hr_requests.db.models import Base
from hr_requests.security.authz import resolve_identity
from hr_requests.services.notifications import NotificationDispatcher


@pytest.fixture
def engine(tmp_path):
    url = f"sqlite:///{tmp_path / 'requests.db'}"
    eng = create_engine(url, **engine_options(url))
    register_immutability_listeners()
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def dispatcher(session_factory):
    return NotificationDispatcher(session_factory, max_attempts=3, max_pending=50)


@pytest.fixture
def employee():
    return resolve_identity({"sub": "E1", "name": "Ali", "role": "employee"})


@pytest.fixture
def manager():
    return resolve_identity({"sub": "M1", "name": "Sara", "role": "manager"})


@pytest.fixture
def ceo():
    return resolve_identity({"sub": "C1", "name": "Reza", "role": "ceo"})


@pytest.fixture
def admin():
    return resolve_identity({"sub": "A1", "name": "Admin", "role": "admin"})


@pytest.fixture
def leave_request_fields():
    return {
        "employee_id": "E1",
        "employee_name": "Ali",
        "request_type": "leave",
        "priority": "medium",
        "description": "vacation",
        "start_date": date(2025, 1, 1),
        "end_date": date(2025, 1, 5),
    }


@pytest.fixture
def client(session_factory, dispatcher):
    from fastapi.testclient import TestClient

    from hr_requests.db.db import get_db
    from hr_requests.main import app

    def _get_test_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    previous_dispatcher = app.state.notification_dispatcher
    app.dependency_overrides[get_db] = _get_test_db
    app.state.notification_dispatcher = dispatcher
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        app.state.notification_dispatcher = previous_dispatcher


@pytest.fixture
def auth_headers():
    from hr_requests.security.security import create_token

    def _headers(user_id: str, role: str, name: str | None = None) -> dict:
        token = create_token(user_id, name=name or user_id, role=role)
        return {"Authorization": f"Bearer {token}"}

    return _headers
