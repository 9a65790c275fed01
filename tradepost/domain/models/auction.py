"""Auction domain model: bid ranking and the minimum next bid."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from .common import parse_datetime


@dataclass
class Bid:
    listing_id: str
    user_bidder_id: str
    amount: float
    timestamp: datetime | None = None
    bid_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "Bid":
        return cls(
            listing_id=str(data["listing_id"]),
            user_bidder_id=str(data["user_bidder_id"]),
            amount=float(data["bid"]),
            timestamp=parse_datetime(data.get("timestamp")),
            bid_id=data.get("bid_id"),
        )


@dataclass
class AuctionDetails:
    """Auction parameters attached 1:1 to an auction listing.

    The listing price is the opening price; the effective price is always
    derived from the bids placed so far.
    """

    listing_id: str
    minimum_bid_increment: float
    end_time: datetime
    status: str = "active"

    def is_over(self, now: datetime) -> bool:
        return self.end_time < now

    @staticmethod
    def current_price(listing_price: float, bids: Iterable[float | Bid]) -> float:
        """``max(listing price, highest bid)``."""
        amounts = [b.amount if isinstance(b, Bid) else float(b) for b in bids]
        return max([float(listing_price), *amounts])

    def minimum_next_bid(self, listing_price: float, bids: Iterable[float | Bid]) -> float:
        return self.current_price(listing_price, bids) + self.minimum_bid_increment

    def accepts(self, amount: float, listing_price: float, bids: Iterable[float | Bid]) -> bool:
        return amount >= self.minimum_next_bid(listing_price, bids)

    @classmethod
    def from_dict(cls, data: dict) -> "AuctionDetails":
        end_time = parse_datetime(data.get("end_time"))
        if end_time is None:
            raise ValueError("Auction details need an end time")
        return cls(
            listing_id=str(data["listing_id"]),
            minimum_bid_increment=float(data.get("minimum_bid_increment") or 0.0),
            end_time=end_time,
            status=data.get("status") or "active",
        )


__all__ = ["AuctionDetails", "Bid"]
