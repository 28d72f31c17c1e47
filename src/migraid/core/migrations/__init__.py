"""Migration discovery, bookkeeping and execution.

Modules
-------
filename   MigrationIdentifier + parse() for ``<sort_key>.<label>.<ext>``
source     MigrationSource: lists candidate files from a directory
store      AppliedSetStore: the applied-migrations collection
loader     FileMigrationLoader / RegistryMigrationLoader
runner     MigrationRunner with reconcile() / status()
scaffold   create_migration_file()
"""

from migraid.core.migrations.filename import MigrationIdentifier, parse
from migraid.core.migrations.loader import (
    FileMigrationLoader,
    MigrationLoader,
    MigrationStep,
    RegistryMigrationLoader,
)
from migraid.core.migrations.runner import (
    MigrationRunner,
    MigrationStatus,
    RunState,
    pending_migrations,
)
from migraid.core.migrations.scaffold import create_migration_file
from migraid.core.migrations.source import MigrationSource
from migraid.core.migrations.store import AppliedMigrationRecord, AppliedSetStore

__all__ = [
    "AppliedMigrationRecord",
    "AppliedSetStore",
    "FileMigrationLoader",
    "MigrationIdentifier",
    "MigrationLoader",
    "MigrationRunner",
    "MigrationSource",
    "MigrationStatus",
    "MigrationStep",
    "RegistryMigrationLoader",
    "RunState",
    "create_migration_file",
    "parse",
    "pending_migrations",
]
