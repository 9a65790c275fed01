"""The listing store: one connection, every repository, explicit transactions."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager

from .config import DatabaseSettings
from .connection import connect_memory, get_connection
from .repositories import (
    BidRepository,
    BuyOrderRepository,
    CatalogRepository,
    ContractorRepository,
    ImageResourceRepository,
    ListingRepository,
    MultipleRepository,
    OfferRepository,
    PhotoRepository,
)
from .schema import ensure_schema


class MarketStore:
    """Repository bundle sharing a single sqlite connection.

    Services receive a store instead of reaching for a module-level database
    handle, so tests can hand them an in-memory one. Multi-row mutations run
    inside :meth:`atomic`; repositories themselves never commit.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        # Autocommit mode: transactions are opened explicitly by atomic().
        conn.isolation_level = None
        self.conn = conn
        self.listings = ListingRepository(conn)
        self.multiples = MultipleRepository(conn)
        self.bids = BidRepository(conn)
        self.buy_orders = BuyOrderRepository(conn)
        self.photos = PhotoRepository(conn)
        self.catalog = CatalogRepository(conn)
        self.contractors = ContractorRepository(conn)
        self.offers = OfferRepository(conn)
        self.resources = ImageResourceRepository(conn)
        self._savepoint_depth = 0

    @classmethod
    def in_memory(cls) -> "MarketStore":
        """Create a store over a fresh in-memory database with the schema applied."""

        conn = connect_memory()
        ensure_schema(conn)
        return cls(conn)

    @contextmanager
    def atomic(self, *, immediate: bool = False) -> Iterator["MarketStore"]:
        """Run the enclosed statements as one transaction.

        Nested calls become savepoints, so a service may call another
        service's atomic operation from inside its own unit of work.
        ``immediate=True`` acquires the database write lock when the
        transaction starts, serialising concurrent writers from the first
        read onwards.
        """

        if self.conn.in_transaction:
            name = f"tradepost_sp_{self._savepoint_depth}"
            self._savepoint_depth += 1
            self.conn.execute(f"SAVEPOINT {name}")
            try:
                yield self
            except BaseException:
                self.conn.execute(f"ROLLBACK TO SAVEPOINT {name}")
                self.conn.execute(f"RELEASE SAVEPOINT {name}")
                raise
            else:
                self.conn.execute(f"RELEASE SAVEPOINT {name}")
            finally:
                self._savepoint_depth -= 1
            return

        self.conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
        try:
            yield self
        except BaseException:
            self.conn.execute("ROLLBACK")
            raise
        else:
            self.conn.execute("COMMIT")


@contextmanager
def open_store(
    db_path: str | None = None,
    *,
    settings: DatabaseSettings | None = None,
    check_same_thread: bool = True,
) -> Iterator[MarketStore]:
    """Open a store over a configured sqlite database with the schema ensured."""

    with get_connection(db_path, settings=settings, check_same_thread=check_same_thread) as conn:
        ensure_schema(conn)
        yield MarketStore(conn)
