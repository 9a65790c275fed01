from __future__ import annotations

import sqlite3

from .migrations import SchemaMigrator
from .tables import ALL_TABLES_SQL


def ensure_schema(conn: sqlite3.Connection) -> None:
    """Create every market table, run pending migrations and stamp the version."""

    for script in ALL_TABLES_SQL:
        conn.executescript(script)
    migrator = SchemaMigrator(conn)
    migrator.run()
    migrator.stamp()
