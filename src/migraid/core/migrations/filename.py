"""Migration filename codec.

Migration files are named ``<sort_key>.<label>.<ext>``, for example
``20240101_093000.add-users.py``.  The sort key is a timestamp formatted
``YYYYMMDD_HHMMSS`` so that plain string order is chronological order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime

from migraid.core.errors import InvalidFilenameFormatError

SORT_KEY_FORMAT = "%Y%m%d_%H%M%S"

_FILENAME_RE = re.compile(r"^(?P<sort_key>\w+)\.(?P<label>[\w-]+)\.(?P<ext>\w+)$")


@dataclass(frozen=True, order=True)
class MigrationIdentifier:
    """One migration file.  Only ``file_name`` is ever persisted."""

    file_name: str
    sort_key: str
    label: str

    @property
    def suffix(self) -> str:
        return "." + self.file_name.rsplit(".", 1)[1]


def parse(file_name: str) -> MigrationIdentifier:
    """Split *file_name* into sort key and label.

    Raises:
        InvalidFilenameFormatError: the name is not ``<sort_key>.<label>.<ext>``.
    """
    match = _FILENAME_RE.match(file_name)
    if match is None:
        raise InvalidFilenameFormatError(file_name)
    return MigrationIdentifier(
        file_name=file_name,
        sort_key=match.group("sort_key"),
        label=match.group("label"),
    )


def format_sort_key(moment: datetime) -> str:
    return moment.strftime(SORT_KEY_FORMAT)


def slugify(name: str) -> str:
    """Lower-case *name*, turn each whitespace character into ``-`` and
    drop anything that is not a word character or hyphen."""
    slug = re.sub(r"\s", "-", name.strip().lower())
    return re.sub(r"[^\w-]", "", slug)


def build_file_name(name: str, moment: datetime, suffix: str) -> str:
    return f"{format_sort_key(moment)}.{slugify(name)}{suffix}"
