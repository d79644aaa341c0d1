"""Shared fixtures for buildwatch tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from buildwatch.config import Config
from buildwatch.data.db import Database


class FakeClock:
    """Manually advanced clock returning timezone-aware UTC datetimes."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def test_config(tmp_path: Path) -> Config:
    """Config pointing at a temporary data directory."""
    return Config(data_dir=tmp_path / "data")


@pytest.fixture
async def test_db(test_config: Config) -> AsyncGenerator[Database]:
    """A fresh on-disk test database."""
    db = Database(test_config.db_path)
    await db.__aenter__()
    yield db  # type: ignore[misc]
    await db.__aexit__(None, None, None)


@pytest.fixture
async def in_memory_db() -> AsyncGenerator[Database]:
    """SQLite in-memory database for fast unit/integration tests."""
    db = Database(Path(":memory:"))
    await db.__aenter__()
    yield db  # type: ignore[misc]
    await db.__aexit__(None, None, None)
