from __future__ import annotations

from typing import Any

from ..connection import iso_utcnow, new_id
from .base import BaseRepository

_COLUMNS = """
    buy_order_id, game_item_id, buyer_id, quantity, price, expiry,
    created_timestamp, fulfilled_timestamp
"""


class BuyOrderRepository(BaseRepository):
    def create(
        self,
        *,
        game_item_id: str,
        buyer_id: str,
        quantity: int,
        price: float,
        expiry: str,
    ) -> str:
        buy_order_id = new_id()
        self._execute(
            f"""
            INSERT INTO buy_orders ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, NULL)
            """,
            (buy_order_id, game_item_id, buyer_id, quantity, price, expiry, iso_utcnow()),
        )
        return buy_order_id

    def get(self, buy_order_id: str) -> dict[str, Any] | None:
        return self._fetch_one_as_dict(
            f"SELECT {_COLUMNS} FROM buy_orders WHERE buy_order_id = ?",
            (buy_order_id,),
        )

    def mark_fulfilled(self, buy_order_id: str, fulfilled_at: str) -> bool:
        """Set the fulfilment timestamp unless it is already set.

        Returns False when another request fulfilled the order first.
        """
        cur = self._execute(
            """
            UPDATE buy_orders SET fulfilled_timestamp = ?
            WHERE buy_order_id = ? AND fulfilled_timestamp IS NULL
            """,
            (fulfilled_at, buy_order_id),
        )
        return cur.rowcount == 1

    def set_expiry(self, buy_order_id: str, expiry: str) -> None:
        self._execute(
            "UPDATE buy_orders SET expiry = ? WHERE buy_order_id = ?",
            (expiry, buy_order_id),
        )

    def list_by_game_item(
        self, game_item_id: str, *, open_at: str | None = None
    ) -> list[dict[str, Any]]:
        """List buy orders for an item; with ``open_at`` only unexpired, unfulfilled ones."""
        query = f"SELECT {_COLUMNS} FROM buy_orders WHERE game_item_id = ?"
        params: list[object] = [game_item_id]
        if open_at is not None:
            query += " AND expiry > ? AND fulfilled_timestamp IS NULL"
            params.append(open_at)
        query += " ORDER BY price DESC, created_timestamp ASC"
        return self._fetch_all_as_dicts(query, tuple(params))

    def list_by_buyer(self, buyer_id: str) -> list[dict[str, Any]]:
        return self._fetch_all_as_dicts(
            f"SELECT {_COLUMNS} FROM buy_orders WHERE buyer_id = ? ORDER BY created_timestamp DESC",
            (buyer_id,),
        )
