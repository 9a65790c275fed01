"""Query helpers shared by every repository.

Repositories never commit. Transaction boundaries belong to the caller,
normally :meth:`tradepost.infrastructure.db.store.MarketStore.atomic`.
"""

from __future__ import annotations

import sqlite3
from typing import Any, Collection, Mapping

Params = tuple[Any, ...]


def _as_dict(cur: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    return {column[0]: value for column, value in zip(cur.description, row)}


class BaseRepository:
    """Wraps one sqlite connection and turns rows into plain dictionaries."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def _execute(self, query: str, params: Params | None = None) -> sqlite3.Cursor:
        return self.conn.execute(query, params or ())

    def _fetch_all_as_dicts(self, query: str, params: Params | None = None) -> list[dict[str, Any]]:
        cur = self._execute(query, params)
        return [_as_dict(cur, row) for row in cur.fetchall()]

    def _fetch_one_as_dict(self, query: str, params: Params | None = None) -> dict[str, Any] | None:
        cur = self._execute(query, params)
        row = cur.fetchone()
        return _as_dict(cur, row) if row else None

    def _fetch_scalar(self, query: str, params: Params | None = None) -> Any:
        """First column of the first row, or None when nothing matched."""
        row = self._execute(query, params).fetchone()
        return row[0] if row else None

    def _update_columns(
        self,
        table: str,
        key_column: str,
        key: str,
        changes: Mapping[str, Any],
        allowed: Collection[str],
    ) -> None:
        """``UPDATE table SET ...`` for ``changes``, restricted to ``allowed`` columns.

        Column names are interpolated into the statement, so anything outside
        ``allowed`` raises ``ValueError`` before the query is built.
        """
        unknown = set(changes) - set(allowed)
        if unknown:
            raise ValueError(f"Cannot update {table} columns: {sorted(unknown)}")
        if not changes:
            return
        assignments = ", ".join(f"{column} = ?" for column in changes)
        self._execute(
            f"UPDATE {table} SET {assignments} WHERE {key_column} = ?",
            (*changes.values(), key),
        )
