from __future__ import annotations

import os
import uuid
from typing import Any

import pytest

os.environ.setdefault("OBDSCRIBE_ENVIRONMENT", "test")

pytest.importorskip("fastapi")
pytest.importorskip("sqlalchemy")

import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from obdscribe.models import Base


class FakeScalarList:
    def __init__(self, values: list[Any]) -> None:
        self._values = values

    def all(self) -> list[Any]:
        return self._values

    def first(self) -> Any:
        return self._values[0] if self._values else None


class FakeResult:
    def __init__(self, *, scalar: Any = None, values: list[Any] | None = None) -> None:
        self._scalar = scalar
        self._values = values or []

    def scalar_one_or_none(self) -> Any:
        return self._scalar

    def scalars(self) -> FakeScalarList:
        return FakeScalarList(self._values)


class FakeDB:
    """Stand-in for ``AsyncSession`` that replays queued results in order."""

    def __init__(self, *results: FakeResult, objects: dict[Any, Any] | None = None) -> None:
        self.results = list(results)
        self.objects = dict(objects or {})
        self.executed: list[Any] = []
        self.added: list[Any] = []
        self.commit_calls = 0
        self.rollback_calls = 0
        self.refresh_calls = 0

    async def execute(self, statement) -> FakeResult:
        self.executed.append(statement)
        if self.results:
            return self.results.pop(0)
        return FakeResult()

    async def get(self, model, key) -> Any:
        return self.objects.get((model, key))

    def add(self, instance: Any) -> None:
        self.added.append(instance)

    async def flush(self) -> None:
        for instance in self.added:
            if getattr(instance, "id", None) is None:
                instance.id = uuid.uuid4()

    async def commit(self) -> None:
        await self.flush()
        self.commit_calls += 1

    async def rollback(self) -> None:
        self.rollback_calls += 1

    async def refresh(self, _instance: Any) -> None:
        self.refresh_calls += 1


@pytest.fixture
def sqlite_engine():
    """An in-memory SQLite engine; tables are created by the caller's event loop."""
    pytest.importorskip("aiosqlite")
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    return engine


@pytest_asyncio.fixture
async def sqlite_sessionmaker(sqlite_engine):
    async with sqlite_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=sqlite_engine, expire_on_commit=False)
    await sqlite_engine.dispose()
