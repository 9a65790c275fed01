"""Service layer modules for tradepost."""

from .bidding import BiddingService  # noqa: F401
from .buy_orders import BuyOrderService  # noqa: F401
from .catalog import CatalogItemExistsError, CatalogService  # noqa: F401
from .errors import (  # noqa: F401
    InvalidStateError,
    MarketError,
    MarketValidationError,
    NotFoundError,
    PermissionDeniedError,
)
from .listings import ListingPolicy, ListingService  # noqa: F401
from .market import MarketServices  # noqa: F401
from .multiples import GroupingService  # noqa: F401
from .photos import PhotoReconciler  # noqa: F401
from .resolver import ListingResolver  # noqa: F401

__all__ = [
    "BiddingService",
    "BuyOrderService",
    "CatalogItemExistsError",
    "CatalogService",
    "GroupingService",
    "InvalidStateError",
    "ListingPolicy",
    "ListingResolver",
    "ListingService",
    "MarketError",
    "MarketServices",
    "MarketValidationError",
    "NotFoundError",
    "PermissionDeniedError",
    "PhotoReconciler",
]
