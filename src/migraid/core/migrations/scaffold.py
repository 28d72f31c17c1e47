"""Scaffold generator for new migration files."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from migraid.core.errors import FileWriteError, MissingMigrationNameError
from migraid.core.logging import get_logger

from .filename import build_file_name, slugify

logger = get_logger(__name__)

TEMPLATE = '''"""Migration: {name}"""


async def up(db):
    # Write migration code here
    pass


async def down(db):
    # Write code to roll back the migration here (never run by migraid)
    pass
'''


def create_migration_file(
    name: str | None,
    directory: Path | str,
    *,
    now: datetime | None = None,
    suffix: str = ".py",
) -> Path:
    """Write an empty migration called *name* into *directory*.

    The file is named ``<YYYYMMDD_HHMMSS>.<slug>.py`` using *now* (local
    time by default) and is never overwritten.

    Raises:
        MissingMigrationNameError: *name* is empty or has no usable characters.
        FileWriteError: the file exists or the directory is not writable.
    """
    if not name or not slugify(name):
        raise MissingMigrationNameError()

    path = Path(directory) / build_file_name(name, now or datetime.now(), suffix)
    try:
        with path.open("x", encoding="utf-8") as fh:
            fh.write(TEMPLATE.format(name=slugify(name)))
    except OSError as exc:
        logger.error("scaffold.write_failed", path=str(path), error=str(exc))
        raise FileWriteError(str(path), cause=exc) from exc

    logger.info("scaffold.created", path=str(path))
    return path
