from __future__ import annotations

from typing import Any

from ..connection import iso_utcnow, new_id
from .base import BaseRepository


class OfferRepository(BaseRepository):
    """Records offer handoffs produced by purchases and buy-order fulfilment.

    This is the default offer desk: the negotiation workflow that picks the
    offer up afterwards lives outside the market core.
    """

    def create_offer(
        self,
        parties: dict[str, Any],
        terms: dict[str, Any],
        listing_items: list[tuple[str, int]],
    ) -> dict[str, Any]:
        offer_id = new_id()
        session_id = new_id()
        created_at = iso_utcnow()
        self._execute(
            """
            INSERT INTO offers (
                offer_id, session_id, customer_id, assigned_id, contractor_id,
                actor_id, kind, cost, title, description, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                offer_id,
                session_id,
                parties["customer_id"],
                parties.get("assigned_id"),
                parties.get("contractor_id"),
                terms["actor_id"],
                terms["kind"],
                str(terms["cost"]),
                terms["title"],
                terms["description"],
                created_at,
            ),
        )
        for listing_id, quantity in listing_items:
            self._execute(
                "INSERT INTO offer_listings (offer_id, listing_id, quantity) VALUES (?, ?, ?)",
                (offer_id, listing_id, quantity),
            )
        return {
            "offer": {
                "id": offer_id,
                "customer_id": parties["customer_id"],
                "assigned_id": parties.get("assigned_id"),
                "contractor_id": parties.get("contractor_id"),
                "kind": terms["kind"],
                "cost": str(terms["cost"]),
                "title": terms["title"],
                "description": terms["description"],
                "timestamp": created_at,
            },
            "session": {"id": session_id},
            "discord_invite": None,
        }

    def list_offer_listings(self, offer_id: str) -> list[dict[str, Any]]:
        return self._fetch_all_as_dicts(
            "SELECT listing_id, quantity FROM offer_listings WHERE offer_id = ? ORDER BY listing_id",
            (offer_id,),
        )
