"""Shared fixtures: temporary SQLite database, fake clock, in-memory remote."""

from __future__ import annotations

import os
import tempfile

_tmp = tempfile.mkdtemp(prefix="markhub-tests-")
os.environ.setdefault("DATA_DIR", _tmp)
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_tmp}/default.db")
os.environ.setdefault("LOG_FILE", os.path.join(_tmp, "markhub.log"))

from pathlib import Path

import pytest

from markhub import models  # noqa: F401
from markhub.database import Base, build_engine, build_session_factory
from markhub.services.bookmarks import BookmarkStore
from markhub.services.local_storage import LocalStorage
from markhub.services.remote import MemoryDocumentStore
from markhub.services.sync import SyncManager


class FakeClock:
    """Millisecond clock under test control."""

    def __init__(self, start: int = 1_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def set(self, value: int) -> int:
        self.now = value
        return value


@pytest.fixture
async def session_factory(tmp_path: Path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def storage(session_factory) -> LocalStorage:
    return LocalStorage(session_factory)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def store(storage: LocalStorage, clock: FakeClock) -> BookmarkStore:
    s = BookmarkStore("user_alice", storage, clock=clock)
    await s.load()
    return s


@pytest.fixture
def remote() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
async def sync(store: BookmarkStore, storage: LocalStorage, remote: MemoryDocumentStore, clock: FakeClock):
    manager = SyncManager("user_alice", store, storage, remote, clock=clock)
    yield manager
    await manager.close()
