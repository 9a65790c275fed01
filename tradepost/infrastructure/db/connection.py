from __future__ import annotations

import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from .config import DatabaseSettings, database_settings


class DatabaseError(Exception):
    """The database could not be opened or configured."""


def iso_utcnow() -> str:
    """Current UTC time as stored in the database."""

    return to_iso(datetime.now(timezone.utc))


def to_iso(value: datetime) -> str:
    """Serialise a datetime the way it is stored (UTC, ``Z`` suffix)."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (
        value.astimezone(timezone.utc)
        .isoformat(timespec="microseconds")
        .replace("+00:00", "Z")
    )


def parse_iso(value: object) -> datetime | None:
    """Parse a stored timestamp back into an aware datetime."""

    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def new_id() -> str:
    """Return a fresh opaque identifier."""

    return uuid.uuid4().hex


def apply_pragmas(
    conn: sqlite3.Connection,
    *,
    enable_wal: bool = True,
    foreign_keys: bool = True,
    busy_timeout_ms: int | None = None,
) -> None:
    pragmas: list[str] = []
    if enable_wal:
        pragmas.append("journal_mode=WAL")
    if foreign_keys:
        pragmas.append("foreign_keys=ON")
    if busy_timeout_ms is not None:
        pragmas.append(f"busy_timeout={int(busy_timeout_ms)}")
    for pragma in pragmas:
        try:
            conn.execute(f"PRAGMA {pragma}")
        except sqlite3.Error as exc:
            raise DatabaseError(f"Failed to apply PRAGMA {pragma}: {exc}") from exc


def _open(path: Path, settings: DatabaseSettings, check_same_thread: bool) -> sqlite3.Connection:
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        conn = sqlite3.connect(
            path,
            timeout=settings.timeout,
            check_same_thread=check_same_thread,
            isolation_level=None,
        )
    except sqlite3.Error as exc:
        raise DatabaseError(f"Failed to connect to database: {exc}") from exc
    try:
        apply_pragmas(
            conn,
            enable_wal=settings.enable_wal,
            foreign_keys=settings.foreign_keys,
            busy_timeout_ms=settings.busy_timeout_ms,
        )
    except DatabaseError:
        conn.close()
        raise
    return conn


@contextmanager
def get_connection(
    db_path: str | Path | None = None,
    *,
    settings: DatabaseSettings | None = None,
    check_same_thread: bool = True,
) -> Iterator[sqlite3.Connection]:
    """Yield a connection to ``db_path``, defaulting to the configured database.

    Connections run in autocommit mode (``isolation_level=None``); transactions
    are opened explicitly by :meth:`MarketStore.atomic`.
    """

    settings = settings or database_settings()
    conn = _open(Path(db_path) if db_path is not None else settings.db_path, settings, check_same_thread)
    try:
        yield conn
    finally:
        conn.close()


def connect_memory() -> sqlite3.Connection:
    """Open an in-memory database with foreign keys enforced."""

    conn = sqlite3.connect(":memory:", isolation_level=None, check_same_thread=False)
    apply_pragmas(conn, enable_wal=False, foreign_keys=True)
    return conn
