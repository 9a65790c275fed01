"""Listing domain model with business logic."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .common import Owner, parse_datetime, refresh_threshold


class SaleType(str, Enum):
    """The shapes a market listing can take."""

    UNIQUE = "unique"
    AUCTION = "auction"
    MULTIPLE = "multiple"
    AGGREGATE = "aggregate"

    @classmethod
    def from_string(cls, value: str | None) -> "SaleType":
        """Convert a string to a SaleType; ``sale`` is the creation alias of ``unique``."""
        if not value:
            raise ValueError("Missing sale type")
        normalized = value.lower().strip()
        if normalized == "sale":
            return cls.UNIQUE
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Invalid sale type '{value}'") from None

    @property
    def is_creatable(self) -> bool:
        """Only unique sales and auctions are created directly."""
        return self in (SaleType.UNIQUE, SaleType.AUCTION)

    def can_transition(self, target: "SaleType") -> bool:
        return target in _TRANSITIONS[self]


_TRANSITIONS: dict[SaleType, frozenset[SaleType]] = {
    SaleType.UNIQUE: frozenset({SaleType.MULTIPLE}),
    SaleType.MULTIPLE: frozenset({SaleType.UNIQUE}),
    SaleType.AUCTION: frozenset(),
    SaleType.AGGREGATE: frozenset(),
}


class ListingStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"

    @classmethod
    def from_string(cls, value: str | None) -> "ListingStatus":
        if not value:
            raise ValueError("Missing listing status")
        try:
            return cls(value.lower().strip())
        except ValueError:
            raise ValueError(f"Invalid listing status '{value}'") from None


@dataclass
class Listing:
    """Domain model representing a market listing row."""

    listing_id: str
    sale_type: SaleType
    price: float
    quantity_available: int
    status: ListingStatus = ListingStatus.ACTIVE
    user_seller_id: str | None = None
    contractor_seller_id: str | None = None
    internal: bool = False
    timestamp: datetime | None = None
    expiration: datetime | None = None

    @property
    def owner(self) -> Owner:
        return Owner(user_id=self.user_seller_id, contractor_id=self.contractor_seller_id)

    def is_owned_by(self, owner: Owner) -> bool:
        """Check whether ``owner`` is this listing's seller."""
        if owner.is_empty:
            return False
        return (
            self.user_seller_id == owner.user_id
            and self.contractor_seller_id == owner.contractor_id
        )

    @property
    def is_archived(self) -> bool:
        return self.status == ListingStatus.ARCHIVED

    @property
    def is_active(self) -> bool:
        return self.status == ListingStatus.ACTIVE

    @property
    def is_auction(self) -> bool:
        return self.sale_type == SaleType.AUCTION

    def can_refresh(self, now: datetime, window_days: int = 3) -> bool:
        """Refresh is allowed once the expiration is no later than a month ahead minus the window."""
        if self.expiration is None:
            return True
        return self.expiration <= refresh_threshold(now, window_days)

    @classmethod
    def from_dict(cls, data: dict) -> "Listing":
        """Create a Listing from a dictionary (e.g., from database row)."""
        return cls(
            listing_id=str(data["listing_id"]),
            sale_type=SaleType.from_string(data.get("sale_type")),
            price=float(data.get("price") or 0.0),
            quantity_available=int(data.get("quantity_available") or 0),
            status=ListingStatus.from_string(data.get("status") or "active"),
            user_seller_id=data.get("user_seller_id"),
            contractor_seller_id=data.get("contractor_seller_id"),
            internal=bool(data.get("internal")),
            timestamp=parse_datetime(data.get("timestamp")),
            expiration=parse_datetime(data.get("expiration")),
        )


__all__ = ["Listing", "ListingStatus", "SaleType"]
