from __future__ import annotations

from typing import Any

from tradepost.infrastructure.db import MarketStore
from tradepost.infrastructure.db.repositories.catalog import DuplicateCatalogItemError
from tradepost.infrastructure.observability import get_logger
from tradepost.services.dto import CatalogItemDTO
from tradepost.services.errors import InvalidStateError

_logger = get_logger(__name__)


class CatalogItemExistsError(InvalidStateError):
    """Raised when a catalog item with the same name is already registered."""


def _row_to_dto(row: dict[str, Any]) -> CatalogItemDTO:
    return CatalogItemDTO(
        id=str(row["id"]),
        name=str(row["name"]),
        details_id=str(row["details_id"]),
        item_type=str(row["item_type"]) if row.get("item_type") else None,
    )


class CatalogService:
    """Registers game items that aggregate views and buy orders refer to."""

    def __init__(self, store: MarketStore) -> None:
        self._store = store

    def list_items(self) -> list[CatalogItemDTO]:
        items = self._store.catalog.list()
        _logger.debug("Listed %d catalog items", len(items))
        return [_row_to_dto(item) for item in items]

    def add_item(
        self, *, name: str, description: str = "", item_type: str = "other"
    ) -> CatalogItemDTO:
        _logger.info("Adding catalog item: %s", name)
        try:
            with self._store.atomic():
                row = self._store.catalog.add(name, description=description, item_type=item_type)
        except DuplicateCatalogItemError as exc:
            _logger.warning("Catalog item already exists: %s", name)
            raise CatalogItemExistsError(str(exc)) from exc
        return CatalogItemDTO(item_type=item_type, **row)


__all__ = ["CatalogItemExistsError", "CatalogService"]
