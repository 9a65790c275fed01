from __future__ import annotations

import sqlite3
from typing import Any

from ..connection import new_id
from .base import BaseRepository


class DuplicateCatalogItemError(ValueError):
    """Raised when a catalog item name is already taken."""


class CatalogRepository(BaseRepository):
    """Catalog entries (game items) that aggregate views are built from.

    Also serves as the default catalog lookup collaborator.
    """

    def add(self, name: str, *, description: str = "", item_type: str = "other") -> dict[str, Any]:
        details_id = new_id()
        game_item_id = new_id()
        self._execute(
            """
            INSERT INTO listing_details (details_id, title, description, item_type, game_item_id)
            VALUES (?, ?, ?, ?, NULL)
            """,
            (details_id, name, description, item_type),
        )
        try:
            self._execute(
                "INSERT INTO catalog_items (game_item_id, name, details_id) VALUES (?, ?, ?)",
                (game_item_id, name, details_id),
            )
        except sqlite3.IntegrityError as exc:
            raise DuplicateCatalogItemError(f"Catalog item '{name}' already exists") from exc
        self._execute(
            "UPDATE listing_details SET game_item_id = ? WHERE details_id = ?",
            (game_item_id, details_id),
        )
        return {"id": game_item_id, "name": name, "details_id": details_id}

    def get_catalog_item(
        self, *, game_item_id: str | None = None, name: str | None = None
    ) -> dict[str, Any] | None:
        if game_item_id is not None:
            return self._fetch_one_as_dict(
                "SELECT game_item_id AS id, name, details_id FROM catalog_items WHERE game_item_id = ?",
                (game_item_id,),
            )
        if name is not None:
            return self._fetch_one_as_dict(
                "SELECT game_item_id AS id, name, details_id FROM catalog_items WHERE name = ?",
                (name,),
            )
        return None

    def list(self) -> list[dict[str, Any]]:
        return self._fetch_all_as_dicts(
            """
            SELECT c.game_item_id AS id, c.name, c.details_id, d.item_type
            FROM catalog_items c
            JOIN listing_details d ON d.details_id = c.details_id
            ORDER BY c.name
            """
        )
