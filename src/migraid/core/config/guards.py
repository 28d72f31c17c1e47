"""
Environment guard.

Beta checkouts carry migrations that must never reach a production or
development database.  Any migraid command run from a directory
whose path contains ``beta`` is only allowed when the environment is set to
something other than production/development.
"""

from __future__ import annotations

from pathlib import Path

from migraid.core.errors import ConfigError
from migraid.core.logging import get_logger

logger = get_logger(__name__)

PROTECTED_ENVIRONMENTS = ("production", "development")


def is_beta_directory(cwd: Path) -> bool:
    return "beta" in str(cwd)


def check_environment(cwd: Path, environment: str) -> None:
    """Refuse to run beta migrations against a protected environment.

    Raises:
        ConfigError: *cwd* is a beta directory and *environment* is
            production, development or unset.
    """
    if not is_beta_directory(cwd):
        return

    logger.info("environment.beta_directory", cwd=str(cwd), environment=environment or None)
    if not environment or environment in PROTECTED_ENVIRONMENTS:
        raise ConfigError(
            f'Detected an environment of "{environment or "<unset>"}" while being in a beta '
            f'directory ("{cwd}"). Set MIGRAID_ENV to the beta environment before running '
            'migraid.'
        ).with_context(directory=str(cwd), environment=environment)
