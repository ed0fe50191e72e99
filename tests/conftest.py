"""Pytest configuration for all tests."""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
import structlog
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from doccrud.core.config import get_settings
from doccrud.core.dispatch import Dispatcher
from doccrud.infrastructure.persistence import SQLiteDocumentStore


class UserSchema(BaseModel):
    """Record schema shared by the service tests."""

    first_name: str
    last_name: str
    role: str = "member"
    age: int | None = None


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Settings are cached per process; tests that patch the environment need a clean cache."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _reset_logging():
    """Tests that configure logging bind it to captured streams; undo that afterwards."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory SQLite engine.

    StaticPool keeps a single connection so every checkout sees the same database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def store(engine: AsyncEngine) -> SQLiteDocumentStore:
    """Document store bound to the in-memory engine."""
    return SQLiteDocumentStore(engine)


@pytest.fixture
def dispatcher() -> Dispatcher:
    return Dispatcher()


@pytest.fixture
def user_schema() -> type[UserSchema]:
    return UserSchema
