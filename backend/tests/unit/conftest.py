# backend/tests/unit/conftest.py
import fnmatch
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import Mock, patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from expense_api.main import app
from expense_api.db import Base, get_db
from expense_api.services.cache import get_cache
from expense_api import models

# One in-memory DB shared across threads (TestClient) via StaticPool
engine = create_engine(
    "sqlite+pysqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Enforce FKs in SQLite (off by default otherwise)
@event.listens_for(engine, "connect")
def _set_sqlite_pragma(dbapi_connection, _):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
Base.metadata.create_all(bind=engine)


class InMemoryCache:
    """Dict-backed stand-in for RedisCache, injected through get_cache"""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    def healthcheck(self):
        return True

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, ttl_seconds=None):
        self.store[key] = value
        self.ttls[key] = ttl_seconds
        return True

    def delete(self, *keys):
        for key in keys:
            self.store.pop(key, None)
            self.ttls.pop(key, None)
        return True

    def keys(self, pattern):
        return [key for key in self.store if fnmatch.fnmatchcase(key, pattern)]

    def delete_pattern(self, pattern):
        keys = self.keys(pattern)
        self.delete(*keys)
        return len(keys)


@pytest.fixture
def connection():
    conn = engine.connect()
    tx = conn.begin()
    try:
        yield conn
    finally:
        tx.rollback()
        conn.close()

@pytest.fixture
def db_session(connection):
    session = TestingSessionLocal(bind=connection)
    try:
        yield session
    finally:
        session.close()

@pytest.fixture
def cache():
    return InMemoryCache()

@pytest.fixture
def notify_mock():
    """Replaces the Celery dispatch so no broker is needed"""
    with patch("expense_api.tasks.notification_tasks.dispatch_expense_notification") as mock:
        mock.return_value = "task-id"
        yield mock

@pytest.fixture(autouse=True)
def _override_dependencies(db_session, cache, notify_mock):
    def _get_db():
        yield db_session
    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_cache] = lambda: cache
    yield
    app.dependency_overrides.clear()

@pytest.fixture
def client():
    return TestClient(app)


# ----------------------------
# Tenants and factories
# ----------------------------

@pytest.fixture
def company_id():
    return uuid4()

@pytest.fixture
def other_company_id():
    return uuid4()

@pytest.fixture
def user_id():
    return uuid4()

@pytest.fixture
def auth_headers(company_id, user_id):
    return {
        "Authorization": "Bearer test-token",
        "X-Company-Id": str(company_id),
        "X-User-Id": str(user_id),
        "X-User-Role": "USER",
    }

@pytest.fixture
def make_category(db_session):
    def _make(company_id, name="Travel", limit=None, description=None, deleted=False):
        category = models.ExpenseCategory(
            company_id=company_id,
            name=name,
            description=description or f"{name} expenses",
            limit=Decimal(str(limit)) if limit is not None else None,
            deleted_at=datetime.now(timezone.utc) if deleted else None,
        )
        db_session.add(category)
        db_session.commit()
        db_session.refresh(category)
        return category
    return _make

@pytest.fixture
def make_expense(db_session, user_id):
    def _make(category, amount, date_produced=None, deleted=False, user=None):
        expense = models.Expense(
            company_id=category.company_id,
            category_id=category.id,
            user_id=user or user_id,
            amount=Decimal(str(amount)),
            date_produced=date_produced or datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc),
            deleted_at=datetime.now(timezone.utc) if deleted else None,
        )
        db_session.add(expense)
        db_session.commit()
        db_session.refresh(expense)
        return expense
    return _make
