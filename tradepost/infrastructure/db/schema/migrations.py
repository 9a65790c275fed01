"""Schema version bookkeeping and run-once market migrations.

``ensure_schema`` creates the current tables with ``CREATE TABLE IF NOT
EXISTS``, which leaves tables from older releases untouched. The steps in
:data:`MARKET_MIGRATIONS` bring such tables up to date. Each step is recorded
by name in ``schema_migrations`` and never runs twice.
"""

from __future__ import annotations

import sqlite3
from typing import Callable, Optional

from tradepost.infrastructure.observability import get_logger

from ..connection import iso_utcnow
from .tables import SCHEMA_MIGRATIONS_SQL, SCHEMA_VERSION_SQL

_logger = get_logger(__name__)

CURRENT_SCHEMA_VERSION = 3

# A step returns a note describing what it changed, or None when the
# database already had the change.
MigrationStep = Callable[[sqlite3.Connection], Optional[str]]


def _columns(conn: sqlite3.Connection, table: str) -> set[str]:
    return {row[1] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}


def _add_column(conn: sqlite3.Connection, table: str, column: str, ddl: str) -> Optional[str]:
    if column in _columns(conn, table):
        return None
    conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}")
    return f"{table}.{column}"


def add_listing_internal_flag(conn: sqlite3.Connection) -> Optional[str]:
    return _add_column(conn, "market_listings", "internal", "INTEGER NOT NULL DEFAULT 0")


def add_auction_status(conn: sqlite3.Connection) -> Optional[str]:
    return _add_column(conn, "auction_details", "status", "TEXT NOT NULL DEFAULT 'active'")


MARKET_MIGRATIONS: tuple[tuple[str, MigrationStep], ...] = (
    ("add_market_listing_columns_v1", add_listing_internal_flag),
    ("add_auction_status_v2", add_auction_status),
)


class SchemaMigrator:
    """Tracks the schema version and which named migrations have run."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def get_version(self) -> int | None:
        self.conn.executescript(SCHEMA_VERSION_SQL)
        row = self.conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
        return row[0] if row else None

    def stamp(self, version: int = CURRENT_SCHEMA_VERSION) -> None:
        """Record ``version`` unless the database already claims a newer one."""
        current = self.get_version()
        if current is not None and current >= version:
            return
        self.conn.execute("DELETE FROM schema_version")
        self.conn.execute(
            "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
            (version, iso_utcnow()),
        )

    def applied(self) -> set[str]:
        self.conn.executescript(SCHEMA_MIGRATIONS_SQL)
        return {row[0] for row in self.conn.execute("SELECT name FROM schema_migrations")}

    def run(
        self, migrations: tuple[tuple[str, MigrationStep], ...] = MARKET_MIGRATIONS
    ) -> list[str]:
        """Apply every migration not yet recorded and return their names."""
        done = self.applied()
        ran: list[str] = []
        for name, step in migrations:
            if name in done:
                continue
            note = step(self.conn)
            self.conn.execute(
                "INSERT INTO schema_migrations (name, applied_at, notes) VALUES (?, ?, ?)",
                (name, iso_utcnow(), note),
            )
            if note:
                _logger.info("Applied schema migration %s (%s)", name, note)
            ran.append(name)
        return ran
