from __future__ import annotations

from typing import Any

from ..connection import iso_utcnow, new_id
from .base import BaseRepository

_LISTING_COLUMNS = (
    "listing_id",
    "sale_type",
    "price",
    "quantity_available",
    "status",
    "user_seller_id",
    "contractor_seller_id",
    "internal",
    "timestamp",
    "expiration",
)

_UPDATABLE_LISTING_COLUMNS = {
    "sale_type",
    "price",
    "quantity_available",
    "status",
    "internal",
    "expiration",
}

_UPDATABLE_DETAILS_COLUMNS = {"title", "description", "item_type", "game_item_id"}


class ListingRepository(BaseRepository):
    """Rows for listings, their details, unique rows and auction details."""

    # -- market_listings ----------------------------------------------------

    def create_listing(
        self,
        *,
        sale_type: str,
        price: float,
        quantity_available: int,
        status: str,
        expiration: str,
        user_seller_id: str | None = None,
        contractor_seller_id: str | None = None,
        internal: bool = False,
        listing_id: str | None = None,
    ) -> str:
        listing_id = listing_id or new_id()
        self._execute(
            """
            INSERT INTO market_listings (
                listing_id, sale_type, price, quantity_available, status,
                user_seller_id, contractor_seller_id, internal, timestamp, expiration
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                listing_id,
                sale_type,
                price,
                quantity_available,
                status,
                user_seller_id,
                contractor_seller_id,
                1 if internal else 0,
                iso_utcnow(),
                expiration,
            ),
        )
        return listing_id

    def get_listing(self, listing_id: str) -> dict[str, Any] | None:
        return self._fetch_one_as_dict(
            f"SELECT {', '.join(_LISTING_COLUMNS)} FROM market_listings WHERE listing_id = ?",
            (listing_id,),
        )

    def update_listing(self, listing_id: str, **fields: Any) -> None:
        """Update the given columns; ``None`` values are skipped."""
        changes = {k: v for k, v in fields.items() if v is not None}
        if "internal" in changes:
            changes["internal"] = 1 if changes["internal"] else 0
        self._update_columns(
            "market_listings", "listing_id", listing_id, changes, _UPDATABLE_LISTING_COLUMNS
        )

    def list_by_seller(
        self,
        *,
        user_seller_id: str | None = None,
        contractor_seller_id: str | None = None,
        include_archived: bool = False,
        active_only: bool = False,
        include_internal: bool = True,
    ) -> list[dict[str, Any]]:
        query = f"SELECT {', '.join(_LISTING_COLUMNS)} FROM market_listings WHERE 1=1"
        params: list[object] = []
        if user_seller_id is not None:
            query += " AND user_seller_id = ?"
            params.append(user_seller_id)
        if contractor_seller_id is not None:
            query += " AND contractor_seller_id = ?"
            params.append(contractor_seller_id)
        if not include_archived:
            query += " AND status != 'archived'"
        if active_only:
            query += " AND status = 'active'"
        if not include_internal:
            query += " AND internal = 0"
        query += " ORDER BY timestamp DESC"
        return self._fetch_all_as_dicts(query, tuple(params))

    # -- listing_details ----------------------------------------------------

    def create_details(
        self,
        *,
        title: str,
        description: str,
        item_type: str,
        game_item_id: str | None = None,
    ) -> str:
        details_id = new_id()
        self._execute(
            """
            INSERT INTO listing_details (details_id, title, description, item_type, game_item_id)
            VALUES (?, ?, ?, ?, ?)
            """,
            (details_id, title, description, item_type, game_item_id),
        )
        return details_id

    def get_details(self, details_id: str) -> dict[str, Any] | None:
        return self._fetch_one_as_dict(
            """
            SELECT d.details_id, d.title, d.description, d.item_type, d.game_item_id,
                   c.name AS item_name
            FROM listing_details d
            LEFT JOIN catalog_items c ON c.game_item_id = d.game_item_id
            WHERE d.details_id = ?
            """,
            (details_id,),
        )

    def update_details(
        self, details_id: str, *, clear_game_item: bool = False, **fields: Any
    ) -> None:
        """Update details columns; ``clear_game_item`` unlinks the catalog item."""
        changes = {k: v for k, v in fields.items() if v is not None}
        if clear_game_item:
            changes["game_item_id"] = None
        self._update_columns(
            "listing_details", "details_id", details_id, changes, _UPDATABLE_DETAILS_COLUMNS
        )

    # -- unique_listings ----------------------------------------------------

    def create_unique(
        self, *, listing_id: str, details_id: str, accept_offers: bool
    ) -> None:
        self._execute(
            "INSERT INTO unique_listings (listing_id, details_id, accept_offers) VALUES (?, ?, ?)",
            (listing_id, details_id, 1 if accept_offers else 0),
        )

    def get_unique(self, listing_id: str) -> dict[str, Any] | None:
        return self._fetch_one_as_dict(
            "SELECT listing_id, details_id, accept_offers FROM unique_listings WHERE listing_id = ?",
            (listing_id,),
        )

    def delete_unique(self, listing_id: str) -> None:
        self._execute("DELETE FROM unique_listings WHERE listing_id = ?", (listing_id,))

    def list_unique_by_game_item(
        self,
        game_item_id: str,
        *,
        status: str | None = None,
        include_internal: bool = True,
    ) -> list[dict[str, Any]]:
        """Non-archived unique listings whose details reference the catalog item."""
        query = f"""
            SELECT {', '.join('l.' + c for c in _LISTING_COLUMNS)},
                   u.details_id, u.accept_offers
            FROM market_listings l
            JOIN unique_listings u ON u.listing_id = l.listing_id
            JOIN listing_details d ON d.details_id = u.details_id
            WHERE d.game_item_id = ? AND l.sale_type = 'unique' AND l.status != 'archived'
        """
        params: list[object] = [game_item_id]
        if status is not None:
            query += " AND l.status = ?"
            params.append(status)
        if not include_internal:
            query += " AND l.internal = 0"
        query += " ORDER BY l.price ASC, l.timestamp ASC"
        return self._fetch_all_as_dicts(query, tuple(params))

    # -- aggregate_listings ------------------------------------------------

    def create_aggregate_member(self, *, listing_id: str, game_item_id: str) -> None:
        self._execute(
            "INSERT INTO aggregate_listings (listing_id, game_item_id) VALUES (?, ?)",
            (listing_id, game_item_id),
        )

    def get_aggregate_game_item(self, listing_id: str) -> str | None:
        return self._fetch_scalar(
            "SELECT game_item_id FROM aggregate_listings WHERE listing_id = ?",
            (listing_id,),
        )

    # -- auction_details ----------------------------------------------------

    def create_auction_details(
        self,
        *,
        listing_id: str,
        minimum_bid_increment: float,
        end_time: str,
        status: str = "active",
    ) -> None:
        self._execute(
            """
            INSERT INTO auction_details (listing_id, minimum_bid_increment, end_time, status)
            VALUES (?, ?, ?, ?)
            """,
            (listing_id, minimum_bid_increment, end_time, status),
        )

    def get_auction_details(self, listing_id: str) -> dict[str, Any] | None:
        return self._fetch_one_as_dict(
            """
            SELECT listing_id, minimum_bid_increment, end_time, status
            FROM auction_details WHERE listing_id = ?
            """,
            (listing_id,),
        )

    def update_auction_details(
        self, listing_id: str, *, minimum_bid_increment: float
    ) -> None:
        self._execute(
            "UPDATE auction_details SET minimum_bid_increment = ? WHERE listing_id = ?",
            (minimum_bid_increment, listing_id),
        )
