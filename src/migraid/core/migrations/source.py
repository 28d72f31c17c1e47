"""Migration source reader.

Lists candidate migration files from the configured directory.  Entries
that are not regular files, or that do not carry the authored suffix,
are skipped.  When authored files and executable artifacts use different
suffixes (``.py`` sources compiled to ``.pyc``, for example) every
authored file must have its artifact next to it; the artifact's name is
the migration's identifier.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

from migraid.core.errors import DirectoryUnreadableError, MissingCompiledArtifactError
from migraid.core.logging import get_logger

from .filename import MigrationIdentifier, parse

logger = get_logger(__name__)


class MigrationSource:
    """Reads migration identifiers from a directory.

    Parameters
    ----------
    directory
        Directory holding the migration files.
    source_suffix
        Extension of authored migration files (default ``.py``).
    artifact_suffix
        Extension of the executable file.  Defaults to *source_suffix*,
        in which case no artifact check is made.
    """

    def __init__(
        self,
        directory: Path | str,
        source_suffix: str = ".py",
        artifact_suffix: str | None = None,
    ) -> None:
        self.directory = Path(directory)
        self.source_suffix = source_suffix
        self.artifact_suffix = artifact_suffix or source_suffix

    @property
    def requires_artifacts(self) -> bool:
        return self.source_suffix != self.artifact_suffix

    async def list_candidates(self) -> list[MigrationIdentifier]:
        """Return identifiers in discovery order (unsorted)."""
        return await asyncio.to_thread(self._scan)

    def _scan(self) -> list[MigrationIdentifier]:
        try:
            with os.scandir(self.directory) as it:
                entries = list(it)
        except OSError as exc:
            logger.error("migration.directory_unreadable", directory=str(self.directory), error=str(exc))
            raise DirectoryUnreadableError(str(self.directory), cause=exc) from exc

        logger.debug("migration.files_found", directory=str(self.directory), files=[e.name for e in entries])

        candidates: list[MigrationIdentifier] = []
        for entry in entries:
            if not entry.is_file():
                continue
            if not entry.name.endswith(self.source_suffix):
                continue

            file_name = entry.name
            if self.requires_artifacts:
                file_name = entry.name[: -len(self.source_suffix)] + self.artifact_suffix
                artifact = self.directory / file_name
                if not artifact.is_file():
                    raise MissingCompiledArtifactError(
                        str(self.directory / entry.name), str(artifact)
                    )

            candidates.append(parse(file_name))

        return candidates
