"""Migration loaders.

A loader turns a :class:`MigrationIdentifier` into a step: any object
with an ``up(db)`` callable.  ``up`` may be a plain function or a
coroutine function; ``down`` may be present but is never called.

- :class:`FileMigrationLoader` imports the migration file by path.
- :class:`RegistryMigrationLoader` looks steps up in a mapping, for
  applications that ship their migrations in code.
"""

from __future__ import annotations

import importlib.util
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from migraid.core.errors import MigrationLoadError, NoUpOperationError
from migraid.core.logging import get_logger

from .filename import MigrationIdentifier

logger = get_logger(__name__)


@runtime_checkable
class MigrationStep(Protocol):
    def up(self, db: Any) -> Any: ...


class MigrationLoader(Protocol):
    def load(self, identifier: MigrationIdentifier) -> MigrationStep: ...


def ensure_step(step: Any, file_name: str) -> MigrationStep:
    """Return *step* if it has a callable ``up``.

    Raises:
        NoUpOperationError: no callable ``up`` attribute.
    """
    if not callable(getattr(step, "up", None)):
        logger.error("migration.no_up_operation", migration=file_name)
        raise NoUpOperationError(file_name)
    return step


class FileMigrationLoader:
    """Imports migration files from *directory*.

    The module itself is the step, unless it defines a ``migration``
    attribute, which is used instead.  Migration file names are not
    valid module names, so each file is loaded under a private
    ``_migraid_migrations.<name>`` module name and never added to
    ``sys.modules``.
    """

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory).resolve()

    def load(self, identifier: MigrationIdentifier) -> MigrationStep:
        path = self.directory / identifier.file_name
        module_name = "_migraid_migrations." + re.sub(r"\W", "_", identifier.file_name)

        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise MigrationLoadError(identifier.file_name)

        module = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(module)
        except Exception as exc:
            logger.error("migration.load_failed", migration=identifier.file_name, error=str(exc))
            raise MigrationLoadError(identifier.file_name, cause=exc) from exc

        return ensure_step(getattr(module, "migration", module), identifier.file_name)


class RegistryMigrationLoader:
    """Looks steps up by file name in an in-memory table."""

    def __init__(self, steps: Mapping[str, Any]) -> None:
        self._steps = dict(steps)

    def register(self, file_name: str, step: Any) -> None:
        self._steps[file_name] = step

    def load(self, identifier: MigrationIdentifier) -> MigrationStep:
        try:
            step = self._steps[identifier.file_name]
        except KeyError as exc:
            raise MigrationLoadError(identifier.file_name, cause=exc) from exc
        return ensure_step(step, identifier.file_name)
