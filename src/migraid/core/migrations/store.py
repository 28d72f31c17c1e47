"""Applied-set store.

One document per applied migration in a single collection::

    {"_id": "20240101_093000.add-users.py",
     "createdAt": datetime, "updatedAt": datetime}

``_id`` is the migration's file name, so the database's primary-key
uniqueness turns a second ``record_applied`` for the same file into
:class:`~migraid.core.errors.DuplicateRecordError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pymongo.errors import DuplicateKeyError, PyMongoError

from migraid.core.errors import DatabaseOperationError, DuplicateRecordError
from migraid.core.logging import get_logger

if TYPE_CHECKING:
    from migraid.core.connection import MongoConnection

logger = get_logger(__name__)


def _operation_failed(
    operation: str, exc: PyMongoError, file_name: str | None = None
) -> DatabaseOperationError:
    logger.error("store.operation_failed", operation=operation, migration=file_name, error=str(exc))
    return DatabaseOperationError(operation, exc, file_name)


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


@dataclass(frozen=True)
class AppliedMigrationRecord:
    """Record of a single applied migration."""

    id: str
    applied_at: datetime | None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> AppliedMigrationRecord:
        return cls(id=doc["_id"], applied_at=doc.get("createdAt"))


class AppliedSetStore:
    """Reads and writes the applied-migrations collection.

    Parameters
    ----------
    collection
        An async collection handle (``pymongo.asynchronous.collection.AsyncCollection``
        or anything with the same ``find``/``find_one``/``insert_one`` surface).
    """

    def __init__(self, collection: Any) -> None:
        self._collection = collection

    @classmethod
    def from_connection(cls, conn: MongoConnection, collection_name: str) -> AppliedSetStore:
        return cls(conn.collection(collection_name))

    async def list_applied(self) -> set[str]:
        """Return the file names of all applied migrations."""
        try:
            docs = await self._collection.find({}, {"_id": 1}).to_list(None)
        except PyMongoError as exc:
            raise _operation_failed("listing applied migrations", exc) from exc
        return {doc["_id"] for doc in docs}

    async def list_records(self) -> list[AppliedMigrationRecord]:
        """Return all records ordered by file name."""
        try:
            docs = await self._collection.find({}).sort("_id", 1).to_list(None)
        except PyMongoError as exc:
            raise _operation_failed("listing applied migrations", exc) from exc
        return [AppliedMigrationRecord.from_document(doc) for doc in docs]

    async def last_applied(self) -> str | None:
        """Return the lexicographically greatest applied file name."""
        try:
            doc = await self._collection.find_one({}, {"_id": 1}, sort=[("_id", -1)])
        except PyMongoError as exc:
            raise _operation_failed("reading the last applied migration", exc) from exc
        return doc["_id"] if doc else None

    async def record_applied(self, file_name: str) -> AppliedMigrationRecord:
        """Insert the record for *file_name*.

        Raises:
            DuplicateRecordError: *file_name* is already recorded.
            DatabaseOperationError: any other driver error.
        """
        now = utcnow()
        try:
            await self._collection.insert_one(
                {"_id": file_name, "createdAt": now, "updatedAt": now}
            )
        except DuplicateKeyError as exc:
            logger.error("migration.duplicate_record", migration=file_name)
            raise DuplicateRecordError(file_name, cause=exc) from exc
        except PyMongoError as exc:
            raise _operation_failed("recording", exc, file_name) from exc

        logger.debug("migration.recorded", migration=file_name)
        return AppliedMigrationRecord(id=file_name, applied_at=now)
