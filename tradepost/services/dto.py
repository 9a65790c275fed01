"""
Centralized DTOs and input/output models for tradepost services.
"""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


# --- Acting user ---
class Actor(BaseModel):
    """The authenticated user a request acts for."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    user_id: str
    is_admin: bool = False


# --- Listing read models ---
class ListingDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    listing_id: str
    sale_type: str
    price: float
    quantity_available: int
    status: str
    user_seller_id: str | None = None
    contractor_seller_id: str | None = None
    internal: bool = False
    timestamp: str | None = None
    expiration: str | None = None


class ListingDetailsDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    details_id: str
    title: str
    description: str
    item_type: str
    game_item_id: str | None = None
    item_name: str | None = None


class BidDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    bid_id: str
    listing_id: str
    user_bidder_id: str
    bid: float
    timestamp: str


class AuctionDetailsDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    minimum_bid_increment: float
    end_time: str
    status: str
    current_price: float
    minimum_next_bid: float


class UniqueListingCompleteDTO(BaseModel):
    """A standalone sellable listing; auctions carry their details and bids."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["unique", "auction"] = "unique"
    listing: ListingDTO
    details: ListingDetailsDTO
    accept_offers: bool = False
    photos: list[str] = Field(default_factory=list)
    auction_details: AuctionDetailsDTO | None = None
    bids: list[BidDTO] = Field(default_factory=list)


class MultipleMemberDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    listing: ListingDTO
    details: ListingDetailsDTO
    photos: list[str] = Field(default_factory=list)


class MultipleCompleteDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["multiple"] = "multiple"
    multiple_id: str
    details: ListingDetailsDTO
    photos: list[str] = Field(default_factory=list)
    default_listing_id: str
    user_seller_id: str | None = None
    contractor_seller_id: str | None = None
    listings: list[MultipleMemberDTO] = Field(default_factory=list)


class BuyOrderDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    buy_order_id: str
    game_item_id: str
    buyer_id: str
    quantity: int
    price: float
    expiry: str
    created_timestamp: str | None = None
    fulfilled_timestamp: str | None = None


class AggregateEntryDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    listing: ListingDTO
    details_id: str
    accept_offers: bool = False
    photos: list[str] = Field(default_factory=list)


class AggregateCompleteDTO(BaseModel):
    """Catalog rollup: the item's details, its unique listings and buy orders."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["aggregate"] = "aggregate"
    game_item_id: str
    details: ListingDetailsDTO
    photos: list[str] = Field(default_factory=list)
    listings: list[AggregateEntryDTO] = Field(default_factory=list)
    buy_orders: list[BuyOrderDTO] = Field(default_factory=list)


ListingCompleteDTO = Union[UniqueListingCompleteDTO, MultipleCompleteDTO, AggregateCompleteDTO]


# Amounts must be finite numbers.
INPUT_CONFIG = ConfigDict(extra="forbid", allow_inf_nan=False)


# --- Listing inputs ---
class ListingCreateDTO(BaseModel):
    model_config = INPUT_CONFIG

    price: float
    title: str
    description: str
    sale_type: str
    item_type: str
    item_name: str | None = None
    quantity_available: int = 1
    photos: list[str] = Field(default_factory=list)
    status: str = "active"
    minimum_bid_increment: float | None = None
    end_time: str | None = None
    spectrum_id: str | None = None
    internal: bool = False


class ListingUpdateDTO(BaseModel):
    """Partial listing update.

    ``item_name`` distinguishes "not sent" from an explicit ``null`` (unlink
    the catalog item) through ``model_fields_set``.
    """

    model_config = INPUT_CONFIG

    status: str | None = None
    price: float | None = None
    quantity_available: int | None = None
    internal: bool | None = None
    title: str | None = None
    description: str | None = None
    item_type: str | None = None
    item_name: str | None = None
    minimum_bid_increment: float | None = None
    photos: list[str] | None = None

    @property
    def unlinks_item(self) -> bool:
        return "item_name" in self.model_fields_set and self.item_name is None


class PhotoUploadDTO(BaseModel):
    """An image file received for a listing."""

    model_config = ConfigDict(extra="forbid")

    content: bytes
    content_type: str = "image/png"


class QuantityUpdateDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    quantity_available: int


class BidCreateDTO(BaseModel):
    model_config = INPUT_CONFIG

    bid: float


class PurchaseItemDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    listing_id: str
    quantity: int


class PurchaseRequestDTO(BaseModel):
    model_config = INPUT_CONFIG

    items: list[PurchaseItemDTO] = Field(default_factory=list)
    note: str | None = None
    offer: float | None = None


class AggregateUpdateDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    description: str | None = None
    photo: str | None = None


# --- Multiple inputs ---
class MultipleCreateDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    listings: list[str] = Field(default_factory=list)
    default_listing_id: str
    title: str
    item_type: str
    description: str
    spectrum_id: str | None = None


class MultipleUpdateDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    listings: list[str] | None = None
    default_listing_id: str | None = None
    title: str | None = None
    item_type: str | None = None
    description: str | None = None


# --- Buy order inputs ---
class BuyOrderCreateDTO(BaseModel):
    model_config = INPUT_CONFIG

    game_item_id: str
    quantity: int
    price: float
    expiry: str


class BuyOrderFulfillDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    contractor_spectrum_id: str | None = None


# --- Offer handoff ---
class OfferResultDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    offer: dict[str, Any]
    session: dict[str, Any]
    discord_invite: str | None = None


class PurchaseResultDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    result: str = "Success"
    offer_id: str
    session_id: str
    discord_invite: str | None = None


# --- Catalog ---
class CatalogItemDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    details_id: str
    item_type: str | None = None
