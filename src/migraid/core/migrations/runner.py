"""Migration runner.

Reconciles the migrations found on disk with the ones recorded as
applied and runs the difference, oldest first.

Each migration is recorded the moment its ``up`` returns, before the
next one starts.  A run that is killed or fails part-way therefore
leaves every completed migration recorded and none of the others; the
next run resumes at the first unapplied file.

Concurrency: the two discovery reads run in parallel; loading, executing
and recording migrations is strictly sequential.  There is no lock, so
only one runner may target a database at a time.  A racing second runner
fails on the store's duplicate-key check rather than double-applying.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from migraid.core.errors import MigraidError, MigrationExecutionError
from migraid.core.logging import LogContext, get_logger

from .filename import MigrationIdentifier
from .loader import MigrationLoader
from .source import MigrationSource
from .store import AppliedMigrationRecord, AppliedSetStore

logger = get_logger(__name__)

# on_event(event, file_name) with event in {"started", "applied", "failed"}
ProgressCallback = Callable[[str, str], None]


class RunState(str, Enum):
    IDLE = "idle"
    DISCOVERING = "discovering"
    NOTHING_PENDING = "nothing_pending"
    APPLYING = "applying"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class MigrationStatus:
    """Snapshot of applied vs. pending migrations."""

    applied: list[AppliedMigrationRecord] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)
    orphaned: list[str] = field(default_factory=list)

    @property
    def up_to_date(self) -> bool:
        return not self.pending


async def _run_together(*reads: Coroutine[Any, Any, Any]) -> list[Any]:
    """Await *reads* concurrently.

    If one fails the others are cancelled and awaited before its error
    is re-raised, so no read is left running unobserved.
    """
    try:
        async with asyncio.TaskGroup() as tg:
            tasks = [tg.create_task(read) for read in reads]
    except BaseExceptionGroup as group:
        error = group.exceptions[0]
    else:
        return [task.result() for task in tasks]
    raise error


def pending_migrations(
    candidates: list[MigrationIdentifier], applied: set[str]
) -> list[MigrationIdentifier]:
    """Return candidates not in *applied*, sorted by file name."""
    return sorted(
        (c for c in candidates if c.file_name not in applied),
        key=lambda c: c.file_name,
    )


class MigrationRunner:
    """Applies pending migrations against one database.

    Parameters
    ----------
    source
        Where candidate migration files are listed from.
    store
        The applied-set store.
    loader
        Turns an identifier into an executable step.
    db
        Handle passed to every step's ``up``.
    on_event
        Optional progress callback, called with ``("started" | "applied"
        | "failed", file_name)``.

    Example::

        runner = MigrationRunner(
            MigrationSource("migrations"),
            AppliedSetStore.from_connection(conn, "_migrations"),
            FileMigrationLoader("migrations"),
            conn.database,
        )
        applied = await runner.reconcile()
    """

    def __init__(
        self,
        source: MigrationSource,
        store: AppliedSetStore,
        loader: MigrationLoader,
        db: Any,
        on_event: ProgressCallback | None = None,
    ) -> None:
        self._source = source
        self._store = store
        self._loader = loader
        self._db = db
        self._on_event = on_event
        self.state = RunState.IDLE
        self.last_applied: str | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def reconcile(self) -> list[str]:
        """Apply all pending migrations in file-name order.

        Returns the file names applied and recorded in this run, in
        execution order.  An empty list means nothing was pending.

        Raises:
            DiscoveryError: before anything was executed.
            MigrationError: a step failed to load or raised.
            DuplicateRecordError: a step ran but was already recorded.
            DatabaseOperationError: the store failed.

        Errors raised after discovery carry ``error.applied``: the steps
        of this run that stay recorded.
        """
        self.state = RunState.DISCOVERING
        try:
            candidates, applied = await _run_together(
                self._source.list_candidates(),
                self._store.list_applied(),
            )
        except BaseException:
            self.state = RunState.ABORTED
            raise

        pending = pending_migrations(candidates, applied)
        for identifier in pending:
            logger.debug("migration.discovered", migration=identifier.file_name)

        if not pending:
            self.state = RunState.NOTHING_PENDING
            self.last_applied = await self._store.last_applied()
            logger.info("migration.nothing_pending", last_applied=self.last_applied)
            return []

        logger.info("migration.pending", count=len(pending))
        self.state = RunState.APPLYING
        completed: list[str] = []

        for identifier in pending:
            try:
                await self._apply(identifier)
            except BaseException as exc:
                self.state = RunState.ABORTED
                if isinstance(exc, MigraidError):
                    exc.applied = list(completed)
                self._emit("failed", identifier.file_name)
                raise
            completed.append(identifier.file_name)

        self.state = RunState.COMPLETED
        self.last_applied = completed[-1]
        logger.info("migration.run_completed", applied=len(completed))
        return completed

    async def status(self) -> MigrationStatus:
        """Compare disk and database without running anything."""
        candidates, records = await _run_together(
            self._source.list_candidates(),
            self._store.list_records(),
        )
        applied = {r.id for r in records}
        on_disk = {c.file_name for c in candidates}
        return MigrationStatus(
            applied=records,
            pending=[c.file_name for c in pending_migrations(candidates, applied)],
            orphaned=sorted(applied - on_disk),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _apply(self, identifier: MigrationIdentifier) -> None:
        """Load, execute and record one migration."""
        file_name = identifier.file_name
        async with LogContext(migration=file_name):
            step = self._loader.load(identifier)

            logger.info("migration.started")
            self._emit("started", file_name)
            try:
                result = step.up(self._db)
                if inspect.isawaitable(result):
                    await result
            except MigraidError:
                logger.error("migration.failed", exc_info=True)
                raise
            except Exception as exc:
                logger.error("migration.failed", error=str(exc), exc_info=True)
                raise MigrationExecutionError(file_name, exc) from exc

            await self._store.record_applied(file_name)
            logger.info("migration.applied")
            self._emit("applied", file_name)

    def _emit(self, event: str, file_name: str) -> None:
        if self._on_event is not None:
            self._on_event(event, file_name)
