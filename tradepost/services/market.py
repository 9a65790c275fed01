"""Wires every market service around one store."""

from __future__ import annotations

from dataclasses import dataclass

from tradepost.infrastructure.db import MarketStore
from tradepost.services.bidding import BiddingService
from tradepost.services.buy_orders import BuyOrderService
from tradepost.services.catalog import CatalogService
from tradepost.services.collaborators import (
    Clock,
    EventPublisher,
    OfferDesk,
    ResourceStore,
    utcnow,
)
from tradepost.services.listings import ListingPolicy, ListingService
from tradepost.services.multiples import GroupingService
from tradepost.services.resolver import ListingResolver


@dataclass
class MarketServices:
    resolver: ListingResolver
    listings: ListingService
    bidding: BiddingService
    grouping: GroupingService
    buy_orders: BuyOrderService
    catalog: CatalogService

    @classmethod
    def build(
        cls,
        store: MarketStore,
        resources: ResourceStore,
        *,
        policy: ListingPolicy | None = None,
        offers: OfferDesk | None = None,
        event_publisher: EventPublisher | None = None,
        clock: Clock = utcnow,
    ) -> "MarketServices":
        """Build the services with the store's repositories as default collaborators."""
        offers = offers or store.offers
        resolver = ListingResolver(store, resources, clock=clock)
        return cls(
            resolver=resolver,
            listings=ListingService(
                store,
                resolver,
                resources=resources,
                permissions=store.contractors,
                catalog=store.catalog,
                offers=offers,
                policy=policy,
                clock=clock,
            ),
            bidding=BiddingService(
                store, resolver, event_publisher=event_publisher, clock=clock
            ),
            grouping=GroupingService(store, resolver, store.contractors),
            buy_orders=BuyOrderService(
                store, store.catalog, store.contractors, offers, clock=clock
            ),
            catalog=CatalogService(store),
        )


__all__ = ["MarketServices"]
