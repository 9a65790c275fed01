"""Bid placement on auction listings."""

from __future__ import annotations

import math

from tradepost.domain.models import AuctionDetails, Bid, Listing, SaleType
from tradepost.infrastructure.db import MarketStore
from tradepost.infrastructure.observability import Timer, get_logger, log_context, record_bid
from tradepost.services.collaborators import Clock, EventPublisher, utcnow
from tradepost.services.dto import BidDTO
from tradepost.services.errors import (
    InvalidStateError,
    MarketError,
    MarketValidationError,
    NotFoundError,
    PermissionDeniedError,
)
from tradepost.services.resolver import ListingResolver, bid_to_dto

_logger = get_logger(__name__)

BID_SECONDS = "bid_placement_seconds"


class BiddingService:
    """Validates and records bids, then notifies subscribers.

    Validation and the replace-bid write run in one ``BEGIN IMMEDIATE``
    transaction, so two bidders cannot both pass against the same stale
    highest bid.
    """

    def __init__(
        self,
        store: MarketStore,
        resolver: ListingResolver,
        *,
        event_publisher: EventPublisher | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._event_publisher = event_publisher
        self._clock = clock

    async def place_bid(self, *, listing_id: str, bidder_id: str, amount: float) -> BidDTO:
        with log_context(listing_id=listing_id, bidder=bidder_id):
            try:
                with Timer(BID_SECONDS, help_text="Bid validation and write time in seconds"):
                    bid_row = self._record_bid(listing_id, bidder_id, amount)
            except MarketError as exc:
                _logger.warning("Bid rejected: %s", exc.message)
                raise
            record_bid("accepted")
            _logger.info("Bid of %.2f accepted", amount)
            bid = bid_to_dto(bid_row)
            await self._notify(listing_id, bid)
            return bid

    def _record_bid(self, listing_id: str, bidder_id: str, amount: float) -> dict:
        if not math.isfinite(amount):
            record_bid("invalid_amount")
            raise MarketValidationError("Invalid bid")
        with self._store.atomic(immediate=True):
            row = self._store.listings.get_listing(listing_id)
            if row is None:
                record_bid("not_found")
                raise NotFoundError("Listing not found")
            listing = Listing.from_dict(row)
            if listing.sale_type != SaleType.AUCTION:
                record_bid("not_auction")
                raise InvalidStateError("Listing is not an auction")
            if listing.is_archived:
                record_bid("archived")
                raise InvalidStateError("Cannot bid on archived listing")
            auction_row = self._store.listings.get_auction_details(listing_id)
            if auction_row is None:
                raise InvalidStateError("Listing is not an auction")
            auction = AuctionDetails.from_dict(auction_row)
            bids = [Bid.from_dict(b) for b in self._store.bids.list(listing_id)]
            minimum = auction.minimum_next_bid(listing.price, bids)

            if auction.is_over(self._clock()):
                record_bid("closed")
                raise InvalidStateError("Auction is over")
            if amount < minimum:
                record_bid("too_low")
                raise MarketValidationError(f"Bid must be at least {minimum:g}")
            if listing.user_seller_id is not None and listing.user_seller_id == bidder_id:
                record_bid("own_listing")
                raise PermissionDeniedError("You cannot bid on your own listing")

            return self._store.bids.replace_bid(
                listing_id=listing_id, user_bidder_id=bidder_id, amount=amount
            )

    def list_bids(self, listing_id: str) -> list[BidDTO]:
        if self._store.listings.get_listing(listing_id) is None:
            raise NotFoundError("Listing not found")
        return [bid_to_dto(b) for b in self._store.bids.list(listing_id)]

    async def _notify(self, listing_id: str, bid: BidDTO) -> None:
        if self._event_publisher is None:
            return
        try:
            listing = self._resolver.resolve(listing_id)
            await self._event_publisher(
                {
                    "type": "bid_placed",
                    "listing": listing.model_dump(),
                    "bid": bid.model_dump(),
                }
            )
        except Exception as exc:
            _logger.error("Bid notification failed: %s", exc, exc_info=exc)


__all__ = ["BiddingService"]
