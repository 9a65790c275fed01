"""Domain models package.

Dataclasses and enums carrying the market's business rules, free of any
persistence or transport concerns.
"""

from .auction import AuctionDetails, Bid
from .buy_order import BuyOrder
from .common import Owner, add_months, parse_datetime, refresh_threshold
from .listing import Listing, ListingStatus, SaleType
from .multiple import MembershipDiff, desired_members, membership_diff

__all__ = [
    "AuctionDetails",
    "Bid",
    "BuyOrder",
    "Listing",
    "ListingStatus",
    "MembershipDiff",
    "Owner",
    "SaleType",
    "add_months",
    "desired_members",
    "membership_diff",
    "parse_datetime",
    "refresh_threshold",
]
