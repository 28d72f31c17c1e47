"""
CLI layer for migraid.

Provides a Typer application whose commands delegate to
``migraid.core``.  This package handles only terminal transport:
argument parsing, progress lines and table formatting.

Entry point::

    migraid --help
"""

from migraid.cli.app import app

__all__ = ["app"]
