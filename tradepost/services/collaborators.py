"""Interfaces of the systems the market core talks to.

The default implementations live in ``tradepost.infrastructure``; tests
substitute small fakes.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any, Protocol

# --- Event Publishing Types ---
EventPayload = dict[str, object]
EventPublisher = Callable[[EventPayload], Awaitable[None]]

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CatalogLookup(Protocol):
    def get_catalog_item(
        self, *, game_item_id: str | None = None, name: str | None = None
    ) -> dict[str, Any] | None:
        """Return ``{"id", "name", "details_id"}`` or None."""
        ...


class PermissionChecker(Protocol):
    def has_permission(self, contractor_id: str, user_id: str, capability: str) -> bool: ...

    def is_member(self, contractor_id: str, user_id: str) -> bool: ...

    def get(
        self, *, contractor_id: str | None = None, spectrum_id: str | None = None
    ) -> dict[str, Any] | None:
        """Return ``{"contractor_id", "spectrum_id", "name", "archived"}`` or None."""
        ...


class ResourceStore(Protocol):
    """The CDN that stores listing photos.

    Any method may raise; callers decide whether a failure is fatal.
    """

    def is_cdn_uri(self, uri: str) -> bool: ...

    def verify_external_resource(self, url: str) -> bool: ...

    def create_external_resource(self, url: str, tag: str) -> dict[str, Any]: ...

    def upload_file(self, filename: str, content: bytes, content_type: str) -> dict[str, Any]: ...

    def remove_resource(self, resource_id: str) -> None: ...

    def get_file_link_resource(self, resource_id: str | None) -> str | None: ...


class OfferDesk(Protocol):
    """Hands purchases and buy-order fulfilments to the offer workflow."""

    def create_offer(
        self,
        parties: dict[str, Any],
        terms: dict[str, Any],
        listing_items: list[tuple[str, int]],
    ) -> dict[str, Any]:
        """Return ``{"offer", "session", "discord_invite"}``."""
        ...


__all__ = [
    "CatalogLookup",
    "Clock",
    "EventPayload",
    "EventPublisher",
    "OfferDesk",
    "PermissionChecker",
    "ResourceStore",
    "utcnow",
]
