from __future__ import annotations

from typing import Any

from ..connection import iso_utcnow, new_id
from .base import BaseRepository


class BidRepository(BaseRepository):
    def replace_bid(self, *, listing_id: str, user_bidder_id: str, amount: float) -> dict[str, Any]:
        """Drop the bidder's previous bid on the listing and record the new one."""
        self._execute(
            "DELETE FROM bids WHERE listing_id = ? AND user_bidder_id = ?",
            (listing_id, user_bidder_id),
        )
        bid = {
            "bid_id": new_id(),
            "listing_id": listing_id,
            "user_bidder_id": user_bidder_id,
            "bid": amount,
            "timestamp": iso_utcnow(),
        }
        self._execute(
            """
            INSERT INTO bids (bid_id, listing_id, user_bidder_id, bid, timestamp)
            VALUES (:bid_id, :listing_id, :user_bidder_id, :bid, :timestamp)
            """,
            bid,
        )
        return bid

    def list(self, listing_id: str) -> list[dict[str, Any]]:
        """List bids on a listing, highest first."""
        return self._fetch_all_as_dicts(
            """
            SELECT bid_id, listing_id, user_bidder_id, bid, timestamp
            FROM bids WHERE listing_id = ?
            ORDER BY bid DESC, timestamp ASC
            """,
            (listing_id,),
        )
