from .bids import BidRepository
from .buy_orders import BuyOrderRepository
from .catalog import CatalogRepository, DuplicateCatalogItemError
from .contractors import ContractorRepository
from .listings import ListingRepository
from .multiples import MultipleRepository
from .offers import OfferRepository
from .photos import PhotoRepository
from .resources import ImageResourceRepository

__all__ = [
    "BidRepository",
    "BuyOrderRepository",
    "CatalogRepository",
    "ContractorRepository",
    "DuplicateCatalogItemError",
    "ImageResourceRepository",
    "ListingRepository",
    "MultipleRepository",
    "OfferRepository",
    "PhotoRepository",
]
