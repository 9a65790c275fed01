from __future__ import annotations

from typing import Any

from ..connection import new_id
from .base import BaseRepository


class MultipleRepository(BaseRepository):
    """Multiple-listing groups and their membership rows."""

    def create_multiple(
        self,
        *,
        details_id: str,
        default_listing_id: str,
        user_seller_id: str | None = None,
        contractor_seller_id: str | None = None,
    ) -> str:
        multiple_id = new_id()
        self._execute(
            """
            INSERT INTO multiples (
                multiple_id, details_id, default_listing_id, user_seller_id, contractor_seller_id
            ) VALUES (?, ?, ?, ?, ?)
            """,
            (multiple_id, details_id, default_listing_id, user_seller_id, contractor_seller_id),
        )
        return multiple_id

    def get_multiple(self, multiple_id: str) -> dict[str, Any] | None:
        return self._fetch_one_as_dict(
            """
            SELECT multiple_id, details_id, default_listing_id, user_seller_id, contractor_seller_id
            FROM multiples WHERE multiple_id = ?
            """,
            (multiple_id,),
        )

    def update_default_listing(self, multiple_id: str, default_listing_id: str) -> None:
        self._execute(
            "UPDATE multiples SET default_listing_id = ? WHERE multiple_id = ?",
            (default_listing_id, multiple_id),
        )

    # -- membership -------------------------------------------------------

    def add_member(self, *, multiple_id: str, listing_id: str, details_id: str) -> None:
        self._execute(
            """
            INSERT INTO multiple_listings (multiple_listing_id, multiple_id, details_id)
            VALUES (?, ?, ?)
            """,
            (listing_id, multiple_id, details_id),
        )

    def remove_member(self, listing_id: str) -> None:
        self._execute(
            "DELETE FROM multiple_listings WHERE multiple_listing_id = ?", (listing_id,)
        )

    def get_membership(self, listing_id: str) -> dict[str, Any] | None:
        return self._fetch_one_as_dict(
            """
            SELECT multiple_listing_id AS listing_id, multiple_id, details_id
            FROM multiple_listings WHERE multiple_listing_id = ?
            """,
            (listing_id,),
        )

    def list_members(self, multiple_id: str) -> list[dict[str, Any]]:
        return self._fetch_all_as_dicts(
            """
            SELECT ml.multiple_listing_id AS listing_id, ml.multiple_id, ml.details_id
            FROM multiple_listings ml
            JOIN market_listings l ON l.listing_id = ml.multiple_listing_id
            WHERE ml.multiple_id = ?
            ORDER BY l.timestamp ASC, ml.multiple_listing_id ASC
            """,
            (multiple_id,),
        )
