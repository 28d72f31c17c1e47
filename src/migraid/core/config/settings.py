"""
Centralized settings for migraid.

:class:`MigraidSettings` is the single, validated source of truth for
the database target and the migration directories.  It cooperates with
the :mod:`~migraid.core.config.loader` (env-file cascade) so that each
deployment environment can point at its own database.

Tags:
    migraid, configuration, settings, pydantic, caching, validation
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from migraid.core.errors import InvalidConfigError

from .loader import discover_env_files, find_project_root, resolve_environment

_LOG_FORMATS = ("console", "json")


class MigraidSettings(BaseSettings):
    """Migraid configuration.

    All fields can be set via ``MIGRAID_*`` environment variables (e.g.
    ``MIGRAID_DATABASE=app``) or through the ``.env`` cascade.
    """

    model_config = SettingsConfigDict(
        env_prefix="MIGRAID_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ── Meta ─────────────────────────────────────────────────────
    environment: str = Field(
        default="",
        validation_alias=AliasChoices("MIGRAID_ENV", "MIGRAID_ENVIRONMENT"),
        description="Deployment environment (development/beta/production/...)",
    )

    # ── Database ─────────────────────────────────────────────────
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=27017)
    database: str = Field(default="")
    collection: str = Field(default="_migrations", description="Applied-set collection")
    server_selection_timeout_ms: int = Field(default=5000)
    configure_hook: str = Field(
        default="",
        description="Importable 'module:callable' given the client before the first ping",
    )

    # ── Migration files ──────────────────────────────────────────
    dist_directory: str = Field(default="migrations", description="Directory migrations are read from")
    sources_directory: str = Field(default="migrations", description="Directory new migrations are created in")
    source_suffix: str = Field(default=".py", description="Extension of authored migration files")
    artifact_suffix: str = Field(default=".py", description="Extension of executable migration files")

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="WARNING", description="Structured log level; CLI progress lines always print")
    log_format: str = Field(default="console")

    @field_validator("port")
    @classmethod
    def _check_port(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError("port must be between 1 and 65535")
        return value

    @field_validator("source_suffix", "artifact_suffix")
    @classmethod
    def _check_suffix(cls, value: str) -> str:
        if not value.startswith(".") or len(value) < 2:
            raise ValueError("suffix must start with a dot, e.g. '.py'")
        return value

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in _LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(_LOG_FORMATS)}")
        return value

    # ── Derived properties ───────────────────────────────────────

    @property
    def mongo_uri(self) -> str:
        return f"mongodb://{self.host}:{self.port}/{self.database}"

    @property
    def requires_compiled_artifacts(self) -> bool:
        """True when authored files and executable artifacts differ."""
        return self.source_suffix != self.artifact_suffix


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, MigraidSettings] = {}


def _build(root: Path, env_files: list[Path], values: dict[str, Any]) -> MigraidSettings:
    try:
        settings = MigraidSettings(_env_file=env_files, **values)  # type: ignore[call-arg]
    except ValidationError as exc:
        first = exc.errors()[0]
        key = ".".join(str(part) for part in first.get("loc", ())) or "settings"
        raise InvalidConfigError(key, first.get("input"), f"Invalid value for {key}: {first.get('msg')}") from exc

    object.__setattr__(settings, "_project_root", root)
    object.__setattr__(settings, "_env_files_loaded", env_files)
    return settings


def get_settings(
    *,
    environment: str | None = None,
    project_root: Path | None = None,
    overrides: dict[str, Any] | None = None,
    _force_reload: bool = False,
) -> MigraidSettings:
    """Load, validate, and cache a :class:`MigraidSettings` instance.

    Parameters
    ----------
    environment:
        Environment name.  Overrides ``MIGRAID_ENV``.
    project_root:
        Override the auto-detected project root.
    overrides:
        Explicit values (CLI flags).  ``None`` values are ignored and a
        settings object built with overrides is never cached.
    _force_reload:
        Bypass cache and reload from disk.
    """
    root = (project_root or find_project_root()).resolve()
    environment = resolve_environment(environment)
    values = {k: v for k, v in (overrides or {}).items() if v is not None}
    if environment:
        values.setdefault("MIGRAID_ENV", environment)

    env_files = discover_env_files(root, environment)

    if values.keys() - {"MIGRAID_ENV"}:
        return _build(root, env_files, values)

    cache_key = f"{root}:{environment}"
    if not _force_reload and cache_key in _settings_cache:
        return _settings_cache[cache_key]

    settings = _build(root, env_files, values)
    _settings_cache[cache_key] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()
