"""
Env-file discovery for :class:`~migraid.core.config.settings.MigraidSettings`.

A project keeps one env file per deployment environment next to shared
defaults.  Files are layered in this order, later ones winning::

    .env.base  →  .env.{environment}  →  .env.local  →  .env

Real ``MIGRAID_*`` environment variables override every file.  Parsing is
left to pydantic-settings; this module only decides which files apply.
"""

from __future__ import annotations

import os
from pathlib import Path

ENVIRONMENT_VARIABLE = "MIGRAID_ENV"

# Checked in order in each directory while walking upward.
PROJECT_MARKERS = ("pyproject.toml", ".git", "setup.py")


def find_project_root(start: Path | None = None) -> Path:
    """Return the nearest directory at or above *start* holding a project marker.

    Falls back to *start* (or the cwd) when none is found.
    """
    origin = (start or Path.cwd()).resolve()
    return next(
        (
            directory
            for directory in (origin, *origin.parents)
            if any((directory / marker).exists() for marker in PROJECT_MARKERS)
        ),
        origin,
    )


def resolve_environment(environment: str | None = None) -> str:
    """Return the active environment name, or ``""`` when none is set."""
    return (environment or os.environ.get(ENVIRONMENT_VARIABLE) or "").strip()


def env_file_names(environment: str = "") -> list[str]:
    """Env-file names for *environment*, lowest precedence first."""
    names = [".env.base"]
    if environment:
        names.append(f".env.{environment}")
    return names + [".env.local", ".env"]


def discover_env_files(
    project_root: Path | None = None,
    environment: str | None = None,
) -> list[Path]:
    """Return the env files of the cascade that exist under *project_root*."""
    root = (project_root or find_project_root()).resolve()
    existing = (root / name for name in env_file_names(resolve_environment(environment)))
    return [path for path in existing if path.is_file()]
