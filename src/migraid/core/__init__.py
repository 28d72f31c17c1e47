"""Core primitives: errors, logging, configuration, connection, migrations."""
