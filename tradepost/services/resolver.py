"""Builds the "complete" read models of listings from the normalized rows.

A listing id resolves to one of three shapes, chosen by its sale type:
the unique shape (also used for auctions), the multiple shape of the group
it belongs to, or the aggregate shape of the catalog item it stands for.
"""

from __future__ import annotations

from typing import Any

from tradepost.domain.models import AuctionDetails, Bid, SaleType
from tradepost.infrastructure.db import MarketStore, to_iso
from tradepost.infrastructure.observability import get_logger
from tradepost.services.collaborators import Clock, ResourceStore, utcnow
from tradepost.services.dto import (
    AggregateCompleteDTO,
    AggregateEntryDTO,
    AuctionDetailsDTO,
    BidDTO,
    BuyOrderDTO,
    ListingCompleteDTO,
    ListingDetailsDTO,
    ListingDTO,
    MultipleCompleteDTO,
    MultipleMemberDTO,
    UniqueListingCompleteDTO,
)
from tradepost.services.errors import NotFoundError

_logger = get_logger(__name__)


def listing_to_dto(row: dict[str, Any]) -> ListingDTO:
    return ListingDTO(
        listing_id=str(row["listing_id"]),
        sale_type=str(row["sale_type"]),
        price=float(row["price"]),
        quantity_available=int(row["quantity_available"]),
        status=str(row["status"]),
        user_seller_id=row.get("user_seller_id"),
        contractor_seller_id=row.get("contractor_seller_id"),
        internal=bool(row.get("internal")),
        timestamp=row.get("timestamp"),
        expiration=row.get("expiration"),
    )


def details_to_dto(row: dict[str, Any]) -> ListingDetailsDTO:
    return ListingDetailsDTO(
        details_id=str(row["details_id"]),
        title=str(row["title"]),
        description=str(row["description"]),
        item_type=str(row["item_type"]),
        game_item_id=row.get("game_item_id"),
        item_name=row.get("item_name"),
    )


def bid_to_dto(row: dict[str, Any]) -> BidDTO:
    return BidDTO(
        bid_id=str(row["bid_id"]),
        listing_id=str(row["listing_id"]),
        user_bidder_id=str(row["user_bidder_id"]),
        bid=float(row["bid"]),
        timestamp=str(row["timestamp"]),
    )


def buy_order_to_dto(row: dict[str, Any]) -> BuyOrderDTO:
    return BuyOrderDTO(
        buy_order_id=str(row["buy_order_id"]),
        game_item_id=str(row["game_item_id"]),
        buyer_id=str(row["buyer_id"]),
        quantity=int(row["quantity"]),
        price=float(row["price"]),
        expiry=str(row["expiry"]),
        created_timestamp=row.get("created_timestamp"),
        fulfilled_timestamp=row.get("fulfilled_timestamp"),
    )


class ListingResolver:
    """Read-only service producing unique, multiple and aggregate views."""

    def __init__(
        self,
        store: MarketStore,
        resources: ResourceStore,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._resources = resources
        self._clock = clock

    # -- dispatch -------------------------------------------------------------

    def resolve(self, listing_id: str) -> ListingCompleteDTO:
        row = self._require_listing(listing_id)
        sale_type = SaleType.from_string(row["sale_type"])
        if sale_type in (SaleType.UNIQUE, SaleType.AUCTION):
            return self._unique_complete(row)
        if sale_type == SaleType.MULTIPLE:
            membership = self._store.multiples.get_membership(listing_id)
            if membership is None:
                _logger.error("Listing %s is marked multiple but has no group", listing_id)
                raise NotFoundError("Listing not found")
            return self.resolve_multiple(membership["multiple_id"])
        if sale_type == SaleType.AGGREGATE:
            game_item_id = self._store.listings.get_aggregate_game_item(listing_id)
            if game_item_id is None:
                raise NotFoundError("Listing not found")
            return self.resolve_aggregate(game_item_id, include_internal=True)
        raise AssertionError(f"Unhandled sale type {sale_type}")

    def resolve_unique(self, listing_id: str) -> UniqueListingCompleteDTO:
        row = self._require_listing(listing_id)
        if SaleType.from_string(row["sale_type"]) not in (SaleType.UNIQUE, SaleType.AUCTION):
            raise NotFoundError("Listing not found")
        return self._unique_complete(row)

    # -- shapes -------------------------------------------------------------

    def _unique_complete(self, row: dict[str, Any]) -> UniqueListingCompleteDTO:
        listing_id = row["listing_id"]
        unique = self._store.listings.get_unique(listing_id)
        if unique is None:
            _logger.error("Listing %s has no unique row", listing_id)
            raise NotFoundError("Listing not found")
        details = self._require_details(unique["details_id"])

        auction_dto: AuctionDetailsDTO | None = None
        bids: list[BidDTO] = []
        is_auction = row["sale_type"] == SaleType.AUCTION.value
        if is_auction:
            bid_rows = self._store.bids.list(listing_id)
            bids = [bid_to_dto(b) for b in bid_rows]
            auction_row = self._store.listings.get_auction_details(listing_id)
            if auction_row is not None:
                auction = AuctionDetails.from_dict(auction_row)
                ranked = [Bid.from_dict(b) for b in bid_rows]
                auction_dto = AuctionDetailsDTO(
                    minimum_bid_increment=auction.minimum_bid_increment,
                    end_time=to_iso(auction.end_time),
                    status=auction.status,
                    current_price=auction.current_price(float(row["price"]), ranked),
                    minimum_next_bid=auction.minimum_next_bid(float(row["price"]), ranked),
                )

        return UniqueListingCompleteDTO(
            type="auction" if is_auction else "unique",
            listing=listing_to_dto(row),
            details=details_to_dto(details),
            accept_offers=bool(unique["accept_offers"]),
            photos=self.photo_urls(unique["details_id"]),
            auction_details=auction_dto,
            bids=bids,
        )

    def resolve_multiple(self, multiple_id: str) -> MultipleCompleteDTO:
        group = self._store.multiples.get_multiple(multiple_id)
        if group is None:
            raise NotFoundError("Multiple not found")
        details = self._require_details(group["details_id"])

        members: list[MultipleMemberDTO] = []
        for membership in self._store.multiples.list_members(multiple_id):
            listing_row = self._store.listings.get_listing(membership["listing_id"])
            member_details = self._store.listings.get_details(membership["details_id"])
            if listing_row is None or member_details is None:
                _logger.warning(
                    "Skipping dangling member %s of multiple %s",
                    membership["listing_id"],
                    multiple_id,
                )
                continue
            members.append(
                MultipleMemberDTO(
                    listing=listing_to_dto(listing_row),
                    details=details_to_dto(member_details),
                    photos=self.photo_urls(membership["details_id"]),
                )
            )

        return MultipleCompleteDTO(
            multiple_id=multiple_id,
            details=details_to_dto(details),
            photos=self.photo_urls(group["details_id"]),
            default_listing_id=group["default_listing_id"],
            user_seller_id=group.get("user_seller_id"),
            contractor_seller_id=group.get("contractor_seller_id"),
            listings=members,
        )

    def resolve_aggregate(
        self,
        game_item_id: str,
        *,
        include_internal: bool = False,
        include_inactive: bool = False,
    ) -> AggregateCompleteDTO:
        """Join the catalog item's details with its non-archived unique listings.

        The public view (the defaults) only shows active, non-internal
        listings. Open buy orders are always included.
        """
        item = self._store.catalog.get_catalog_item(game_item_id=game_item_id)
        if item is None:
            raise NotFoundError("Catalog item not found")
        details = self._require_details(item["details_id"])

        rows = self._store.listings.list_unique_by_game_item(
            game_item_id,
            status=None if include_inactive else "active",
            include_internal=include_internal,
        )
        entries = [
            AggregateEntryDTO(
                listing=listing_to_dto(row),
                details_id=row["details_id"],
                accept_offers=bool(row["accept_offers"]),
                photos=self.photo_urls(row["details_id"]),
            )
            for row in rows
        ]
        orders = self._store.buy_orders.list_by_game_item(
            game_item_id, open_at=to_iso(self._clock())
        )
        return AggregateCompleteDTO(
            game_item_id=game_item_id,
            details=details_to_dto(details),
            photos=self.photo_urls(item["details_id"]),
            listings=entries,
            buy_orders=[buy_order_to_dto(o) for o in orders],
        )

    # -- helpers ------------------------------------------------------------

    def details_id_for(self, row: dict[str, Any]) -> str | None:
        """The details row currently representing a listing (and keying its photos)."""
        listing_id = row["listing_id"]
        sale_type = SaleType.from_string(row["sale_type"])
        if sale_type in (SaleType.UNIQUE, SaleType.AUCTION):
            unique = self._store.listings.get_unique(listing_id)
            return unique["details_id"] if unique else None
        if sale_type == SaleType.MULTIPLE:
            membership = self._store.multiples.get_membership(listing_id)
            return membership["details_id"] if membership else None
        if sale_type == SaleType.AGGREGATE:
            game_item_id = self._store.listings.get_aggregate_game_item(listing_id)
            item = (
                self._store.catalog.get_catalog_item(game_item_id=game_item_id)
                if game_item_id
                else None
            )
            return item["details_id"] if item else None
        raise AssertionError(f"Unhandled sale type {sale_type}")

    def photo_urls(self, details_id: str) -> list[str]:
        """Resolve photo resources to URLs, dropping any that no longer resolve."""
        urls: list[str] = []
        for photo in self._store.photos.list_for_details(details_id):
            resource_id = str(photo["resource_id"])
            try:
                url = self._resources.get_file_link_resource(resource_id)
            except Exception as exc:
                _logger.warning("Could not resolve photo %s: %s", resource_id, exc)
                continue
            if url is None:
                _logger.warning("Photo %s no longer resolves; dropping it", resource_id)
                continue
            urls.append(url)
        return urls

    def _require_listing(self, listing_id: str) -> dict[str, Any]:
        row = self._store.listings.get_listing(listing_id)
        if row is None:
            raise NotFoundError("Listing not found")
        return row

    def _require_details(self, details_id: str) -> dict[str, Any]:
        details = self._store.listings.get_details(details_id)
        if details is None:
            _logger.error("Details row %s is missing", details_id)
            raise NotFoundError("Listing not found")
        return details


__all__ = [
    "ListingResolver",
    "bid_to_dto",
    "buy_order_to_dto",
    "details_to_dto",
    "listing_to_dto",
]
