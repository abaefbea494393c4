"""
Pytest configuration and fixtures for TodoGraph tests.
"""

import os

# Settings are cached on first use, so configure them before importing the app
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.pop("PEXELS_API_KEY", None)

import asyncio  # noqa: E402
from datetime import datetime, timezone  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from todograph.main import app  # noqa: E402
from todograph.database import get_session  # noqa: E402
from todograph.routes import tasks as tasks_routes  # noqa: E402


def make_task(task_id, dependencies=None, due_date=None, title=None):
    """Task record in the shape the graph services consume."""
    return {
        "id": task_id,
        "title": title or f"Task {task_id}",
        "due_date": due_date,
        "image_url": None,
        "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "dependencies": list(dependencies or []),
    }


@pytest.fixture
def task_factory():
    return make_task


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Create a test database engine backed by a throwaway SQLite file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_maker(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def test_session(session_maker):
    """Create a test database session."""
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_maker):
    """Create an async test client with test database."""

    async def override_get_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def fresh_write_lock(monkeypatch):
    """Give each test its own writer lock; an asyncio.Lock binds to one loop."""
    monkeypatch.setattr(tasks_routes, "_graph_write_lock", asyncio.Lock())


@pytest_asyncio.fixture(scope="function")
async def readonly_client(test_engine, tmp_path):
    """Test client whose sessions open the same SQLite file read-only."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///file:{tmp_path / 'test.db'}?mode=ro&uri=true",
        echo=False,
    )
    readonly_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_session():
        async with readonly_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    await engine.dispose()
