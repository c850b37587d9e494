"""
Pytest configuration and fixtures for Trestle tests.
"""

import uuid
from datetime import date, timedelta

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from trestle.database import build_engine, get_session, init_db
from trestle.domain import DependencyEdge, DependencyType, TaskRecord
from trestle.main import app
from trestle.routes.deps import get_schedule_service
from trestle.services.scheduler import ScheduleMutationService
from trestle.store import InMemoryTaskStore, SqlTaskStore

# Fixed "today" so status roll-up does not depend on when tests run
TODAY = date(2024, 1, 1)


class Clock:
    """Settable clock for the mutation service."""

    def __init__(self, today: date = TODAY):
        self.today = today

    def __call__(self) -> date:
        return self.today


@pytest.fixture
def project_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def make_task(project_id):
    """Factory for task records: start date plus duration in days."""

    def _make(name, start=TODAY, days=1, **kwargs) -> TaskRecord:
        kwargs.setdefault("project_id", project_id)
        return TaskRecord(
            id=kwargs.pop("id", uuid.uuid4()),
            name=name,
            start_date=start,
            due_date=start + timedelta(days=days),
            **kwargs,
        )

    return _make


@pytest.fixture
def link():
    """Factory for dependency edges, FS with zero lag by default."""

    def _edge(predecessor, successor, dependency_type=DependencyType.FINISH_TO_START, lag=0):
        return DependencyEdge(
            predecessor_id=predecessor.id,
            successor_id=successor.id,
            dependency_type=dependency_type,
            lag_days=lag,
        )

    return _edge


@pytest.fixture
def store() -> InMemoryTaskStore:
    return InMemoryTaskStore()


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def service(store, clock) -> ScheduleMutationService:
    return ScheduleMutationService(store, clock=clock)


@pytest.fixture
def seed(store):
    """Put task records and edges straight into the in-memory store."""

    def _seed(tasks=(), edges=()):
        for task in tasks:
            store.tasks[task.id] = task
        for edge in edges:
            store.edges[edge.id] = edge

    return _seed


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Create a throwaway SQLite database engine."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'trestle_test.db'}")
    await init_db(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(test_engine, clock):
    """Create an async test client with test database."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_session():
        async with async_session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    schedule_service = ScheduleMutationService(SqlTaskStore(async_session_maker), clock=clock)

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_schedule_service] = lambda: schedule_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
