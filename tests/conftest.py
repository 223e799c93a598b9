"""
Pytest configuration and fixtures for Stickies tests.

Provides database fixtures, task factories, and the in-memory fake store.
"""

import pytest
import pytest_asyncio

from stickies.database import DatabaseManager
from stickies.models import Subtask, Task, TaskMode, TaskPriority
from stickies.store import SqlAlchemyStore

from tests.helpers import OWNER_ID, TODAY, FakeStore


@pytest_asyncio.fixture
async def db_manager():
    """
    Create an in-memory SQLite database for testing.

    Yields:
        DatabaseManager instance with in-memory database
    """
    manager = DatabaseManager("sqlite+aiosqlite:///:memory:")
    await manager.initialize()

    yield manager

    await manager.close()


@pytest_asyncio.fixture
async def db_session(db_manager):
    """Provide a database session for tests."""
    async with db_manager.get_session() as session:
        yield session


@pytest_asyncio.fixture
async def sql_store(db_manager):
    """SqlAlchemyStore on the in-memory database."""
    return SqlAlchemyStore(db_manager)


@pytest.fixture
def owner_id():
    return OWNER_ID


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def make_task():
    """
    Factory for Task models owned by the test owner and planned for TODAY.

    Example:
        def test_something(make_task):
            task = make_task("Write docs", position=2, completed=True)
    """
    def _make_task(
        title: str,
        position: int = 0,
        completed: bool = False,
        mode: TaskMode = TaskMode.PERSONAL,
        priority: TaskPriority = TaskPriority.MEDIUM,
        subtasks=(),
        **kwargs
    ) -> Task:
        kwargs.setdefault("owner_id", OWNER_ID)
        kwargs.setdefault("start_date", TODAY)
        return Task(
            title=title,
            position=position,
            completed=completed,
            mode=mode,
            priority=priority,
            subtasks=[
                s if isinstance(s, Subtask) else Subtask(title=s)
                for s in subtasks
            ],
            **kwargs
        )

    return _make_task


@pytest.fixture
def three_tasks(make_task):
    """T1, T2, T3 at positions 0, 1, 2."""
    return [
        make_task("T1", position=0),
        make_task("T2", position=1),
        make_task("T3", position=2),
    ]


@pytest.fixture
def fake_store(three_tasks):
    """FakeStore seeded with three_tasks."""
    return FakeStore(three_tasks)
