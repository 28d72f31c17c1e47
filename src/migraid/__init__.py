"""
migraid - ordered, resumable migrations for MongoDB.

Discovers timestamp-prefixed migration files in a directory, runs the
ones not yet recorded in the target database (oldest first), and
records each one as soon as it succeeds.

Entry point::

    migraid --help
"""

from migraid.core.errors import MigraidError
from migraid.core.migrations import (
    AppliedSetStore,
    FileMigrationLoader,
    MigrationRunner,
    MigrationSource,
    create_migration_file,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "AppliedSetStore",
    "FileMigrationLoader",
    "MigraidError",
    "MigrationRunner",
    "MigrationSource",
    "create_migration_file",
]
