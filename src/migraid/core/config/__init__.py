"""Configuration: env-file cascade, validated settings, environment guard.

Quick start::

    from migraid.core.config import get_settings

    settings = get_settings()
    print(settings.mongo_uri)        # mongodb://127.0.0.1:27017/
    print(settings.dist_directory)   # migrations

Architecture::

    settings.py       MigraidSettings (Pydantic) + get_settings() cache
    loader.py         .env file discovery (cascade order)
    guards.py         beta-directory guard for protected environments
"""

from .guards import check_environment, is_beta_directory
from .loader import (
    discover_env_files,
    env_file_names,
    find_project_root,
    resolve_environment,
)
from .settings import (
    MigraidSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    # Settings
    "MigraidSettings",
    "get_settings",
    "clear_settings_cache",
    # Loader
    "find_project_root",
    "discover_env_files",
    "env_file_names",
    "resolve_environment",
    # Guards
    "check_environment",
    "is_beta_directory",
]
