"""
Document-database connection.

One :class:`MongoConnection` is opened per process and handed to
everything that needs the database: the applied-set store reads and
writes its collection through it, and every migration's ``up`` receives
its database handle.  There is no module-level client cache; whoever
calls :func:`connect` owns the connection and closes it.

Example::

    async with await connect(settings) as conn:
        store = AppliedSetStore.from_connection(conn, settings.collection)
"""

from __future__ import annotations

import inspect
import pkgutil
from typing import TYPE_CHECKING, Any

from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from migraid.core.errors import DatabaseConnectionError
from migraid.core.logging import get_logger

if TYPE_CHECKING:
    from migraid.core.config import MigraidSettings

logger = get_logger(__name__)


class MongoConnection:
    """An open client plus the target database handle."""

    def __init__(self, client: Any, database_name: str) -> None:
        self.client = client
        self.database_name = database_name
        self.database = client[database_name]

    def collection(self, name: str) -> Any:
        return self.database[name]

    async def close(self) -> None:
        await self.client.close()
        logger.debug("database.closed", database=self.database_name)

    async def __aenter__(self) -> MongoConnection:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


async def run_configure_hook(target: str, client: Any) -> bool:
    """Pass *client* to the project hook named by *target* (``module:callable``).

    The hook may customise the client (codecs, event listeners, ...) and
    may be a coroutine function.  A hook that cannot be imported or that
    raises is logged and skipped; the connection proceeds without it.
    Returns True when the hook ran.
    """
    if not target:
        logger.debug("database.configure_hook_unset")
        return False

    try:
        hook = pkgutil.resolve_name(target)
    except (ImportError, AttributeError, ValueError) as exc:
        logger.warning("database.configure_hook_not_found", hook=target, error=str(exc))
        return False

    try:
        result = hook(client)
        if inspect.isawaitable(result):
            await result
    except Exception as exc:
        logger.error("database.configure_hook_failed", hook=target, error=str(exc), exc_info=True)
        return False

    logger.info("database.configure_hook_used", hook=target)
    return True


async def connect(settings: MigraidSettings, client: Any | None = None) -> MongoConnection:
    """Open the database named by *settings* and verify it answers.

    Raises:
        DatabaseConnectionError: no database name configured, or the
            server did not answer ``ping``.
    """
    if not settings.database:
        raise DatabaseConnectionError(
            "No database configured. Set MIGRAID_DATABASE or pass --database."
        )

    if client is None:
        client = AsyncMongoClient(
            settings.host,
            settings.port,
            serverSelectionTimeoutMS=settings.server_selection_timeout_ms,
            tz_aware=True,
        )

    await run_configure_hook(settings.configure_hook, client)

    try:
        await client.admin.command("ping")
    except PyMongoError as exc:
        logger.error("database.connect_failed", uri=settings.mongo_uri, error=str(exc))
        await client.close()
        raise DatabaseConnectionError(
            f"Error connecting to {settings.mongo_uri}: {exc}", cause=exc
        ).with_context(uri=settings.mongo_uri) from exc

    logger.info("database.connected", uri=settings.mongo_uri)
    return MongoConnection(client, settings.database)
