"""Grouping unique listings into multiple listings and back."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from tradepost.domain.models import (
    Listing,
    Owner,
    SaleType,
    desired_members,
    membership_diff,
)
from tradepost.infrastructure.db import MarketStore
from tradepost.infrastructure.observability import get_logger, log_context, record_grouping
from tradepost.services.collaborators import PermissionChecker
from tradepost.services.dto import Actor, MultipleCompleteDTO, MultipleCreateDTO, MultipleUpdateDTO
from tradepost.services.errors import (
    InvalidStateError,
    MarketValidationError,
    NotFoundError,
    PermissionDeniedError,
)
from tradepost.services.permissions import SellerAccess
from tradepost.services.resolver import ListingResolver

_logger = get_logger(__name__)


@dataclass(frozen=True)
class _Conversion:
    """A listing queued to join a group.

    ``convert`` children are standalone unique listings; ``relocate``
    children already belong to another group.
    """

    listing_id: str
    details_id: str
    kind: Literal["convert", "relocate"]
    source_multiple_id: str | None = None


class GroupingService:
    """Create and update multiple listings.

    Every child is validated before anything is written; the conversions
    then run as one transaction.
    """

    def __init__(
        self,
        store: MarketStore,
        resolver: ListingResolver,
        permissions: PermissionChecker,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._access = SellerAccess(permissions)

    def get_multiple(self, multiple_id: str) -> MultipleCompleteDTO:
        return self._resolver.resolve_multiple(multiple_id)

    def create_multiple(self, actor: Actor, payload: MultipleCreateDTO) -> MultipleCompleteDTO:
        _require_text(title=payload.title, item_type=payload.item_type, description=payload.description)
        seller = self._access.seller_for(actor, payload.spectrum_id)
        members = desired_members(payload.listings, payload.default_listing_id)

        queued: list[_Conversion] = []
        for listing_id in members:
            listing = self._load(listing_id)
            if not listing.sale_type.can_transition(SaleType.MULTIPLE):
                raise MarketValidationError(f"Listing {listing_id} is not a unique listing")
            if not listing.is_owned_by(seller):
                raise PermissionDeniedError(f"You do not own listing {listing_id}")
            if listing.is_archived:
                raise InvalidStateError(f"Listing {listing_id} is archived")
            queued.append(self._queue_unique(listing_id))

        with self._store.atomic():
            details_id = self._store.listings.create_details(
                title=payload.title,
                description=payload.description,
                item_type=payload.item_type,
            )
            multiple_id = self._store.multiples.create_multiple(
                details_id=details_id,
                default_listing_id=payload.default_listing_id,
                **seller.as_columns(),
            )
            for conversion in queued:
                self._join(multiple_id, conversion)

        with log_context(multiple_id=multiple_id):
            _logger.info("Created multiple with %d listings", len(queued))
        record_grouping("create", len(queued))
        return self._resolver.resolve_multiple(multiple_id)

    def update_multiple(
        self, actor: Actor, multiple_id: str, payload: MultipleUpdateDTO
    ) -> MultipleCompleteDTO:
        group = self._store.multiples.get_multiple(multiple_id)
        if group is None:
            raise NotFoundError("Multiple not found")
        seller = Owner.from_row(group)
        self._access.require_manage(actor, seller)

        current = [m["listing_id"] for m in self._store.multiples.list_members(multiple_id)]
        default_listing_id = payload.default_listing_id or group["default_listing_id"]
        requested = payload.listings if payload.listings is not None else current
        diff = membership_diff(current, desired_members(requested, default_listing_id))

        queued: list[_Conversion] = []
        for listing_id in sorted(diff.added):
            listing = self._load(listing_id)
            if listing.sale_type not in (SaleType.UNIQUE, SaleType.MULTIPLE):
                raise MarketValidationError(
                    f"Listing {listing_id} cannot be added to a multiple"
                )
            if not listing.is_owned_by(seller):
                raise MarketValidationError(
                    f"Listing {listing_id} does not belong to the multiple's seller"
                )
            if listing.is_archived:
                raise InvalidStateError(f"Listing {listing_id} is archived")
            if listing.sale_type.can_transition(SaleType.MULTIPLE):
                queued.append(self._queue_unique(listing_id))
            else:
                queued.append(self._queue_relocation(listing_id))

        with log_context(multiple_id=multiple_id):
            with self._store.atomic():
                for conversion in queued:
                    self._join(multiple_id, conversion)
                for listing_id in sorted(diff.removed):
                    self._leave(listing_id)
                if payload.title or payload.description or payload.item_type:
                    self._store.listings.update_details(
                        group["details_id"],
                        title=payload.title,
                        description=payload.description,
                        item_type=payload.item_type,
                    )
                if default_listing_id != group["default_listing_id"]:
                    self._store.multiples.update_default_listing(multiple_id, default_listing_id)
            _logger.info(
                "Updated multiple: %d added, %d removed", len(diff.added), len(diff.removed)
            )

        record_grouping("update", len(diff.added) + len(diff.removed))
        return self._resolver.resolve_multiple(multiple_id)

    # -- conversions --------------------------------------------------------

    def _queue_unique(self, listing_id: str) -> _Conversion:
        unique = self._store.listings.get_unique(listing_id)
        if unique is None:
            raise MarketValidationError(f"Listing {listing_id} is not a unique listing")
        return _Conversion(listing_id, unique["details_id"], "convert")

    def _queue_relocation(self, listing_id: str) -> _Conversion:
        membership = self._store.multiples.get_membership(listing_id)
        if membership is None:
            raise MarketValidationError(f"Listing {listing_id} is not part of a multiple")
        return _Conversion(
            listing_id, membership["details_id"], "relocate", membership["multiple_id"]
        )

    def _join(self, multiple_id: str, conversion: _Conversion) -> None:
        listings = self._store.listings
        multiples = self._store.multiples
        if conversion.kind == "convert":
            listings.delete_unique(conversion.listing_id)
            listings.update_listing(conversion.listing_id, sale_type=SaleType.MULTIPLE.value)
        else:
            multiples.remove_member(conversion.listing_id)
        multiples.add_member(
            multiple_id=multiple_id,
            listing_id=conversion.listing_id,
            details_id=conversion.details_id,
        )
        if conversion.source_multiple_id is not None:
            self._repair_default(conversion.source_multiple_id, conversion.listing_id)

    def _leave(self, listing_id: str) -> None:
        """Turn a member back into a standalone unique listing that accepts offers."""
        membership = self._store.multiples.get_membership(listing_id)
        if membership is None:
            return
        self._store.multiples.remove_member(listing_id)
        self._store.listings.update_listing(listing_id, sale_type=SaleType.UNIQUE.value)
        self._store.listings.create_unique(
            listing_id=listing_id,
            details_id=membership["details_id"],
            accept_offers=True,
        )

    def _repair_default(self, multiple_id: str, moved_listing_id: str) -> None:
        group = self._store.multiples.get_multiple(multiple_id)
        if group is None or group["default_listing_id"] != moved_listing_id:
            return
        remaining = self._store.multiples.list_members(multiple_id)
        if remaining:
            self._store.multiples.update_default_listing(multiple_id, remaining[0]["listing_id"])
        else:
            _logger.warning("Multiple %s has no members left", multiple_id)

    def _load(self, listing_id: str) -> Listing:
        row = self._store.listings.get_listing(listing_id)
        if row is None:
            raise NotFoundError(f"Listing {listing_id} not found")
        return Listing.from_dict(row)


def _require_text(**fields: str | None) -> None:
    for name, value in fields.items():
        if not value or not value.strip():
            raise MarketValidationError(f"Missing required field: {name}")


__all__ = ["GroupingService"]
