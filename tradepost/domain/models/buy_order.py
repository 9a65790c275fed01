"""Buy order domain model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .common import parse_datetime


@dataclass
class BuyOrder:
    """A standing offer to buy ``quantity`` of a catalog item at ``price`` each.

    Fulfilment is terminal; cancellation moves ``expiry`` to the cancel time,
    which has the same effect as natural expiry.
    """

    buy_order_id: str
    game_item_id: str
    buyer_id: str
    quantity: int
    price: float
    expiry: datetime
    created_timestamp: datetime | None = None
    fulfilled_timestamp: datetime | None = None

    @property
    def is_fulfilled(self) -> bool:
        return self.fulfilled_timestamp is not None

    def is_expired(self, now: datetime) -> bool:
        return self.expiry <= now

    def is_open(self, now: datetime) -> bool:
        """Open orders can still be fulfilled or cancelled."""
        return not self.is_fulfilled and not self.is_expired(now)

    @property
    def total(self) -> float:
        return self.quantity * self.price

    @classmethod
    def from_dict(cls, data: dict) -> "BuyOrder":
        expiry = parse_datetime(data.get("expiry"))
        if expiry is None:
            raise ValueError("Buy order needs an expiry")
        return cls(
            buy_order_id=str(data["buy_order_id"]),
            game_item_id=str(data["game_item_id"]),
            buyer_id=str(data["buyer_id"]),
            quantity=int(data["quantity"]),
            price=float(data["price"]),
            expiry=expiry,
            created_timestamp=parse_datetime(data.get("created_timestamp")),
            fulfilled_timestamp=parse_datetime(data.get("fulfilled_timestamp")),
        )


__all__ = ["BuyOrder"]
