from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from tests.factories import auction_payload, listing_payload
from tradepost.infrastructure.observability import get_metrics_summary
from tradepost.services import (
    BiddingService,
    InvalidStateError,
    MarketValidationError,
    NotFoundError,
    PermissionDeniedError,
)


@pytest.fixture
def auction_id(services, seller, clock) -> str:
    return services.listings.create_listing(seller, auction_payload(clock)).listing.listing_id


def _bid(services, listing_id: str, bidder: str, amount: float):
    return asyncio.run(
        services.bidding.place_bid(listing_id=listing_id, bidder_id=bidder, amount=amount)
    )


def _bid_outcomes() -> dict[str, float]:
    return get_metrics_summary()["counters"].get("bids_total", {})


def test_bid_below_minimum_is_rejected(services, auction_id) -> None:
    with pytest.raises(MarketValidationError, match="at least 110"):
        _bid(services, auction_id, "buyer", 105)

    assert services.bidding.list_bids(auction_id) == []
    assert _bid_outcomes() == {"outcome=too_low": 1.0}


def test_accepted_bid_raises_the_minimum(services, auction_id) -> None:
    bid = _bid(services, auction_id, "buyer", 130)

    assert bid.bid == 130
    assert bid.user_bidder_id == "buyer"
    view = services.listings.get_listing(auction_id)
    assert view.auction_details.current_price == 130
    assert view.auction_details.minimum_next_bid == 140
    with pytest.raises(MarketValidationError, match="at least 140"):
        _bid(services, auction_id, "other", 135)


@pytest.mark.parametrize("amount", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_bid_is_rejected(services, auction_id, amount) -> None:
    with pytest.raises(MarketValidationError, match="Invalid bid"):
        _bid(services, auction_id, "buyer", amount)

    assert services.bidding.list_bids(auction_id) == []
    assert _bid_outcomes() == {"outcome=invalid_amount": 1.0}


def test_bid_after_rejected_infinite_bid_still_uses_the_opening_minimum(
    services, auction_id
) -> None:
    with pytest.raises(MarketValidationError):
        _bid(services, auction_id, "buyer", float("inf"))

    bid = _bid(services, auction_id, "other", 110)

    assert bid.bid == 110
    assert services.listings.get_listing(auction_id).auction_details.minimum_next_bid == 120


def test_bid_attempts_are_timed(services, auction_id) -> None:
    _bid(services, auction_id, "buyer", 110)
    with pytest.raises(MarketValidationError):
        _bid(services, auction_id, "other", 111)

    timings = get_metrics_summary()["histograms"]["bid_placement_seconds"]
    assert timings["default"]["count"] == 2


def test_new_bid_replaces_bidders_previous_bid(services, auction_id) -> None:
    _bid(services, auction_id, "buyer", 110)
    _bid(services, auction_id, "other", 120)
    _bid(services, auction_id, "buyer", 150)

    bids = services.bidding.list_bids(auction_id)

    assert [(b.user_bidder_id, b.bid) for b in bids] == [("buyer", 150), ("other", 120)]


def test_cannot_bid_on_own_listing(services, auction_id) -> None:
    with pytest.raises(PermissionDeniedError):
        _bid(services, auction_id, "seller", 500)


def test_cannot_bid_after_end(services, auction_id, clock) -> None:
    clock.advance(days=3)

    with pytest.raises(InvalidStateError, match="Auction is over"):
        _bid(services, auction_id, "buyer", 500)


def test_cannot_bid_on_archived_auction(services, auction_id, admin) -> None:
    services.listings.archive_listing(admin, auction_id)

    with pytest.raises(InvalidStateError, match="archived"):
        _bid(services, auction_id, "buyer", 500)


def test_cannot_bid_on_regular_listing(services, seller) -> None:
    listing_id = services.listings.create_listing(seller, listing_payload()).listing.listing_id

    with pytest.raises(InvalidStateError, match="not an auction"):
        _bid(services, listing_id, "buyer", 500)


def test_unknown_listing(services) -> None:
    with pytest.raises(NotFoundError):
        _bid(services, "missing", "buyer", 500)
    with pytest.raises(NotFoundError):
        services.bidding.list_bids("missing")


def test_accepted_bid_is_published(services, auction_id, publisher) -> None:
    _bid(services, auction_id, "buyer", 110)

    (event,) = publisher.events
    assert event["type"] == "bid_placed"
    assert event["bid"]["bid"] == 110
    assert event["listing"]["listing"]["listing_id"] == auction_id
    assert event["listing"]["auction_details"]["minimum_next_bid"] == 120


def test_notification_failure_does_not_reject_bid(store, services, auction_id, clock) -> None:
    async def broken(_payload):
        raise RuntimeError("socket closed")

    bidding = BiddingService(store, services.resolver, event_publisher=broken, clock=clock)

    bid = asyncio.run(bidding.place_bid(listing_id=auction_id, bidder_id="buyer", amount=110))

    assert bid.bid == 110
    assert len(services.bidding.list_bids(auction_id)) == 1


def test_bid_exactly_at_end_time_is_accepted(services, auction_id, clock) -> None:
    clock.advance(days=2)

    bid = _bid(services, auction_id, "buyer", 110)

    assert bid.bid == 110
    clock.advance(microseconds=1)
    with pytest.raises(InvalidStateError):
        _bid(services, auction_id, "other", 200)


def test_minimum_uses_opening_price_until_bids_exceed_it(services, seller, clock) -> None:
    payload = auction_payload(
        clock, price=1000, end_time=(clock.now + timedelta(days=1)).isoformat()
    )
    listing_id = services.listings.create_listing(seller, payload).listing.listing_id

    with pytest.raises(MarketValidationError, match="at least 1010"):
        _bid(services, listing_id, "buyer", 1005)
