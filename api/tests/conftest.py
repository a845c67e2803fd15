"""
Shared fixtures.

Every test gets a fresh in-memory SQLite store standing in for PostgreSQL; the
schema comes from the declarative models so the same unique and check
constraints apply.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret-key-with-at-least-32-characters")

from concurrent.futures import Future
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import repo
from app.database import Base
from app import models  # noqa: F401  registers tables on Base.metadata
from app.services import notifications
from app.services.rate_limit import limiter


class InlineExecutor:
    """Runs submitted work immediately so background writes are visible to assertions."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future

    def shutdown(self, wait=True):
        return None


@pytest.fixture(autouse=True)
def store(monkeypatch):
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    session_factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    monkeypatch.setattr(repo, "SessionLocal", session_factory)
    monkeypatch.setattr(notifications, "_executor", InlineExecutor())
    limiter.reset()
    yield session_factory
    engine.dispose()


@pytest.fixture
def base_time():
    return datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_user():
    def _make(name: str, categories: list[str] | None = None):
        prefs = {"preferred_categories": categories} if categories is not None else {}
        return repo.create_user(display_name=name, username=name.lower(), preferences=prefs)["id"]

    return _make


@pytest.fixture
def make_item():
    def _make(owner_id: str, title: str = "Hades", category: str = "PC", available: bool = True, created_at=None):
        return repo.create_item(owner_id, title=title, category=category, is_available=available, created_at=created_at)["id"]

    return _make


def count_rows(session_factory, model, **filters) -> int:
    stmt = select(func.count()).select_from(model)
    for column, value in filters.items():
        stmt = stmt.where(getattr(model, column) == value)
    with session_factory() as db:
        return int(db.execute(stmt).scalar() or 0)


def minutes(n: int) -> timedelta:
    return timedelta(minutes=n)
