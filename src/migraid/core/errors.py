"""
Structured error types for migraid.

Every failure the migration runner can surface is a typed subclass of
:class:`MigraidError`.  Callers switch on the class (or its stable
``code``), never on the message text.

Manifesto:
    - **Typed Error Hierarchy:** Discovery, storage, execution and
      scaffolding failures each get their own class
    - **Stable codes:** ``error.code`` is safe to compare and to log
    - **Rich Context:** Errors carry the migration file and paths involved
    - **Error Chaining:** The underlying exception is kept as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                        MigraidError                              │
        │                (code, category, context, cause)                  │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  DiscoveryError              MigrationError                      │
        │   InvalidFilenameFormat       NoUpOperation                      │
        │   MissingCompiledArtifact     MigrationLoad                      │
        │   DirectoryUnreadable         MigrationExecution                 │
        │                                                                  │
        │  DatabaseError               ScaffoldError                       │
        │   DatabaseConnection          MissingMigrationName               │
        │   DatabaseOperation           FileWrite                          │
        │   DuplicateRecord                                                │
        │                                                                  │
        │  ConfigError                                                     │
        │   InvalidConfig                                                  │
        └─────────────────────────────────────────────────────────────────┘

Propagation:
    Discovery errors abort a run before any migration executes.
    Migration errors abort mid-run; everything committed before the
    failing file stays committed.  ``DuplicateRecordError`` is always
    fatal because it means two runners raced or a record was written twice.

Usage:
    from migraid.core.errors import MigrationExecutionError

    try:
        await runner.reconcile()
    except MigrationExecutionError as e:
        print(e.context.migration, e.cause)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and reporting."""

    DATABASE = "DATABASE"         # Connection, duplicate key
    STORAGE = "STORAGE"           # Directory listing, file writes
    SOURCE = "SOURCE"             # Migration files on disk
    PARSE = "PARSE"               # Filename format
    VALIDATION = "VALIDATION"     # Bad user input
    CONFIG = "CONFIG"             # Missing config, invalid settings
    MIGRATION = "MIGRATION"       # Loading or executing a migration step
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only non-empty fields end up in :meth:`to_dict`, so the dict can go
    straight into a structured log event.
    """

    migration: str | None = None
    path: str | None = None
    directory: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for key in ("migration", "path", "directory"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class MigraidError(Exception):
    """
    Base exception for all migraid errors.

    Subclasses set ``code`` and ``default_category``; instances carry the
    message, an :class:`ErrorContext` and an optional chained ``cause``.
    """

    code: str = "MIGRAID_ERROR"
    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause
        # File names committed earlier in the same run, set by the runner.
        self.applied: list[str] = []

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> MigraidError:
        """
        Add context to this error (fluent API).

        Usage:
            raise FileWriteError("Cannot write").with_context(path=str(target))
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logging or JSON output."""
        result: dict[str, Any] = {
            "error_type": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
        }
        context = self.context.to_dict()
        if context:
            result["context"] = context
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, code={self.code!r})"


# =============================================================================
# DISCOVERY ERRORS
# =============================================================================


class DiscoveryError(MigraidError):
    """Migration files on disk could not be determined."""

    code = "DISCOVERY"
    default_category = ErrorCategory.SOURCE


class InvalidFilenameFormatError(DiscoveryError):
    """A filename does not match ``<sortKey>.<label>.<ext>``."""

    code = "INVALID_FILENAME_FORMAT"
    default_category = ErrorCategory.PARSE

    def __init__(self, file_name: str, message: str | None = None):
        super().__init__(
            message
            or (
                f'Filename "{file_name}" does not match the required migration '
                'filename pattern. Please add the file using "migraid create".'
            ),
            context=ErrorContext(migration=file_name),
        )
        self.file_name = file_name


class MissingCompiledArtifactError(DiscoveryError):
    """An authored migration file has no executable artifact next to it."""

    code = "MISSING_COMPILED_ARTIFACT"

    def __init__(self, source_path: str, artifact_path: str):
        super().__init__(
            f'Found a migration source file "{source_path}" for which there is '
            f'no executable artifact "{artifact_path}".',
            context=ErrorContext(path=source_path, metadata={"artifact_path": artifact_path}),
        )
        self.source_path = source_path
        self.artifact_path = artifact_path


class DirectoryUnreadableError(DiscoveryError):
    """The migration directory cannot be listed."""

    code = "DIRECTORY_UNREADABLE"
    default_category = ErrorCategory.STORAGE

    def __init__(self, directory: str, cause: BaseException | None = None):
        super().__init__(
            f'Error reading migration files from "{directory}".',
            context=ErrorContext(directory=directory),
            cause=cause,
        )
        self.directory = directory


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(MigraidError):
    """Database operation failed."""

    code = "DATABASE"
    default_category = ErrorCategory.DATABASE


class DatabaseConnectionError(DatabaseError):
    """The document database could not be reached."""

    code = "DATABASE_CONNECTION"


class DatabaseOperationError(DatabaseError):
    """A read or write against the applied-set collection failed."""

    code = "DATABASE_OPERATION"

    def __init__(self, operation: str, cause: BaseException, file_name: str | None = None):
        target = f' "{file_name}"' if file_name else ""
        super().__init__(
            f"Database error while {operation}{target}: {cause}",
            context=ErrorContext(migration=file_name, metadata={"operation": operation}),
            cause=cause,
        )
        self.operation = operation
        self.file_name = file_name


class DuplicateRecordError(DatabaseError):
    """A migration was recorded as applied twice."""

    code = "DUPLICATE_RECORD"

    def __init__(self, file_name: str, cause: BaseException | None = None):
        super().__init__(
            f'Migration "{file_name}" is already recorded as applied.',
            context=ErrorContext(migration=file_name),
            cause=cause,
        )
        self.file_name = file_name


# =============================================================================
# MIGRATION ERRORS
# =============================================================================


class MigrationError(MigraidError):
    """Loading or executing a migration step failed."""

    code = "MIGRATION"
    default_category = ErrorCategory.MIGRATION

    def __init__(
        self,
        message: str,
        *,
        file_name: str,
        applied: list[str] | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message, context=ErrorContext(migration=file_name), cause=cause)
        self.file_name = file_name
        self.applied = list(applied or [])


class NoUpOperationError(MigrationError):
    """The loaded migration exposes no callable ``up``."""

    code = "NO_UP_OPERATION"

    def __init__(self, file_name: str):
        super().__init__(
            f'No method "up()" exists on the migration object from file "{file_name}".',
            file_name=file_name,
        )


class MigrationLoadError(MigrationError):
    """The migration module could not be imported."""

    code = "MIGRATION_LOAD"

    def __init__(self, file_name: str, cause: BaseException | None = None):
        super().__init__(
            f'Error loading migration script "{file_name}".',
            file_name=file_name,
            cause=cause,
        )


class MigrationExecutionError(MigrationError):
    """A migration's ``up`` raised."""

    code = "MIGRATION_EXECUTION"

    def __init__(
        self,
        file_name: str,
        cause: BaseException,
        applied: list[str] | None = None,
    ):
        super().__init__(
            f'Error executing migration script "{file_name}": {cause}',
            file_name=file_name,
            applied=applied,
            cause=cause,
        )


# =============================================================================
# SCAFFOLD ERRORS
# =============================================================================


class ScaffoldError(MigraidError):
    """A new migration file could not be created."""

    code = "SCAFFOLD"
    default_category = ErrorCategory.STORAGE


class MissingMigrationNameError(ScaffoldError):
    """``create`` was called without a usable name."""

    code = "MISSING_MIGRATION_NAME"
    default_category = ErrorCategory.VALIDATION

    def __init__(self, message: str = "Please specify a migration name."):
        super().__init__(message)


class FileWriteError(ScaffoldError):
    """The migration file could not be written."""

    code = "FILE_WRITE"

    def __init__(self, path: str, cause: BaseException | None = None):
        super().__init__(
            f'Error writing new migration file "{path}".',
            context=ErrorContext(path=path),
            cause=cause,
        )
        self.path = path


# =============================================================================
# CONFIG ERRORS
# =============================================================================


class ConfigError(MigraidError):
    """Configuration error."""

    code = "CONFIG"
    default_category = ErrorCategory.CONFIG


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    code = "INVALID_CONFIG"

    def __init__(self, key: str, value: Any, message: str | None = None):
        super().__init__(message or f"Invalid value for {key}: {value!r}")
        self.key = key
        self.value = value


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "MigraidError",
    "DiscoveryError",
    "InvalidFilenameFormatError",
    "MissingCompiledArtifactError",
    "DirectoryUnreadableError",
    "DatabaseError",
    "DatabaseConnectionError",
    "DatabaseOperationError",
    "DuplicateRecordError",
    "MigrationError",
    "NoUpOperationError",
    "MigrationLoadError",
    "MigrationExecutionError",
    "ScaffoldError",
    "MissingMigrationNameError",
    "FileWriteError",
    "ConfigError",
    "InvalidConfigError",
]
