"""
Shared pytest fixtures and configuration for migraid tests.

This module provides:
- An in-memory async stand-in for the MongoDB client/database/collection
  surface migraid uses (raises the real ``DuplicateKeyError``)
- Temporary migration directories and a helper to write migration files
- Settings-cache and environment isolation

Usage:
    Fixtures are auto-discovered by pytest::

        async def test_something(store, migrations_dir, write_migration):
            write_migration("20240101_000000.init")
"""

import sys
import textwrap
from pathlib import Path
from typing import Any, Callable, Generator

import pytest
import structlog
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

# Ensure migraid package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from migraid.core.config import clear_settings_cache
from migraid.core.connection import MongoConnection
from migraid.core.migrations import AppliedSetStore


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)
        if test_path.parts[0] == "cli":
            item.add_marker(pytest.mark.cli)
        else:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# In-memory database
# =============================================================================


class FakeCursor:
    def __init__(self, docs: list[dict[str, Any]]):
        self._docs = docs

    def sort(self, key: str, direction: int = 1) -> "FakeCursor":
        self._docs = sorted(self._docs, key=lambda d: d[key], reverse=direction < 0)
        return self

    async def to_list(self, length: int | None = None) -> list[dict[str, Any]]:
        return list(self._docs if length is None else self._docs[:length])


class FakeCollection:
    """Async collection keeping documents in insertion order."""

    def __init__(self, name: str = "collection"):
        self.name = name
        self.docs: dict[Any, dict[str, Any]] = {}

    def find(self, filter: dict | None = None, projection: dict | None = None) -> FakeCursor:
        docs = [dict(d) for d in self.docs.values()]
        if projection:
            keep = set(projection) | {"_id"}
            docs = [{k: v for k, v in d.items() if k in keep} for d in docs]
        return FakeCursor(docs)

    async def find_one(
        self,
        filter: dict | None = None,
        projection: dict | None = None,
        sort: list[tuple[str, int]] | None = None,
    ) -> dict[str, Any] | None:
        cursor = self.find(filter, projection)
        if sort:
            cursor.sort(*sort[0])
        docs = await cursor.to_list(1)
        return docs[0] if docs else None

    async def insert_one(self, doc: dict[str, Any]) -> None:
        if doc["_id"] in self.docs:
            raise DuplicateKeyError(f"E11000 duplicate key error collection: {self.name} dup key: {doc['_id']}")
        self.docs[doc["_id"]] = dict(doc)

    @property
    def ids(self) -> list[Any]:
        return list(self.docs)


class FakeDatabase:
    def __init__(self, name: str = "test"):
        self.name = name
        self.collections: dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection(name))


class FakeAdmin:
    def __init__(self, client: "FakeClient"):
        self._client = client

    async def command(self, name: str) -> dict[str, Any]:
        if self._client.reachable:
            self._client.pinged = True
            return {"ok": 1.0}
        raise ServerSelectionTimeoutError("localhost:27017: [Errno 111] Connection refused")


class FakeClient:
    def __init__(self, reachable: bool = True):
        self.reachable = reachable
        self.pinged = False
        self.closed = False
        self.databases: dict[str, FakeDatabase] = {}
        self.admin = FakeAdmin(self)

    def __getitem__(self, name: str) -> FakeDatabase:
        return self.databases.setdefault(name, FakeDatabase(name))

    async def close(self) -> None:
        self.closed = True


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None, None, None]:
    """Drop MIGRAID_* variables, run from an empty project root and reset logging."""
    import os

    for key in list(os.environ):
        if key.startswith("MIGRAID_"):
            monkeypatch.delenv(key, raising=False)
    project = tmp_path / "project"
    project.mkdir()
    (project / "pyproject.toml").touch()
    monkeypatch.chdir(project)
    clear_settings_cache()
    yield
    clear_settings_cache()
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def connection(client: FakeClient) -> MongoConnection:
    return MongoConnection(client, "test")


@pytest.fixture
def collection(connection: MongoConnection) -> FakeCollection:
    return connection.collection("_migrations")


@pytest.fixture
def store(collection: FakeCollection) -> AppliedSetStore:
    return AppliedSetStore(collection)


@pytest.fixture
def migrations_dir(tmp_path: Path) -> Path:
    d = tmp_path / "migrations"
    d.mkdir()
    return d


@pytest.fixture
def write_migration(migrations_dir: Path) -> Callable[..., Path]:
    """Write a migration module whose ``up`` logs its name to ``db["log"]``."""

    def _write(stem: str, body: str | None = None, suffix: str = ".py") -> Path:
        path = migrations_dir / f"{stem}{suffix}"
        if body is None:
            body = f"""\
                async def up(db):
                    await db["log"].insert_one({{"_id": "{stem}"}})
                """
        path.write_text(textwrap.dedent(body), encoding="utf-8")
        return path

    return _write
