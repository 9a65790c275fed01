from __future__ import annotations

from .base import BaseRepository


class PhotoRepository(BaseRepository):
    """Associations between resource ids and the details row they illustrate."""

    def list_for_details(self, details_id: str) -> list[dict[str, object]]:
        return self._fetch_all_as_dicts(
            """
            SELECT resource_id, details_id, position FROM listing_photos
            WHERE details_id = ?
            ORDER BY position ASC, rowid ASC
            """,
            (details_id,),
        )

    def add(self, details_id: str, resource_ids: list[str]) -> None:
        start = self._fetch_scalar(
            "SELECT COALESCE(MAX(position) + 1, 0) FROM listing_photos WHERE details_id = ?",
            (details_id,),
        )
        for offset, resource_id in enumerate(resource_ids):
            self._execute(
                "INSERT INTO listing_photos (resource_id, details_id, position) VALUES (?, ?, ?)",
                (resource_id, details_id, int(start or 0) + offset),
            )

    def remove(self, details_id: str, resource_id: str) -> None:
        self._execute(
            "DELETE FROM listing_photos WHERE details_id = ? AND resource_id = ?",
            (details_id, resource_id),
        )
