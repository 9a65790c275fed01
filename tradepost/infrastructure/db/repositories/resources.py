from __future__ import annotations

from typing import Any

from ..connection import iso_utcnow, new_id
from .base import BaseRepository


class ImageResourceRepository(BaseRepository):
    """Rows backing the table-based resource store."""

    def insert(self, *, filename: str, external_url: str | None) -> dict[str, Any]:
        resource = {
            "resource_id": new_id(),
            "filename": filename,
            "external_url": external_url,
            "created_at": iso_utcnow(),
        }
        self._execute(
            """
            INSERT INTO image_resources (resource_id, filename, external_url, created_at)
            VALUES (:resource_id, :filename, :external_url, :created_at)
            """,
            resource,
        )
        return resource

    def get(self, resource_id: str) -> dict[str, Any] | None:
        return self._fetch_one_as_dict(
            "SELECT resource_id, filename, external_url, created_at FROM image_resources WHERE resource_id = ?",
            (resource_id,),
        )

    def delete(self, resource_id: str) -> bool:
        cur = self._execute("DELETE FROM image_resources WHERE resource_id = ?", (resource_id,))
        return cur.rowcount > 0
