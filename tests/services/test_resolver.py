from __future__ import annotations

import pytest

from tests.factories import listing_payload, photo
from tradepost.infrastructure.db import to_iso
from tradepost.services import MarketValidationError, NotFoundError
from tradepost.services.dto import ListingUpdateDTO
from tradepost.services.permissions import MANAGE_MARKET


def _aggregate_listing(store, clock, game_item_id: str) -> str:
    with store.atomic():
        listing_id = store.listings.create_listing(
            sale_type="aggregate",
            price=20,
            quantity_available=0,
            status="active",
            expiration=to_iso(clock.now),
        )
        store.listings.create_aggregate_member(listing_id=listing_id, game_item_id=game_item_id)
    return listing_id


def test_aggregate_member_resolves_to_catalog_view(services, store, clock, seller) -> None:
    item = services.catalog.add_item(name="Hull C", item_type="ship")
    linked = services.listings.create_listing(
        seller, listing_payload(item_name="Hull C")
    ).listing.listing_id
    aggregate_id = _aggregate_listing(store, clock, item.id)

    view = services.listings.get_listing(aggregate_id)

    assert view.type == "aggregate"
    assert view.game_item_id == item.id
    assert view.details.title == "Hull C"
    assert [entry.listing.listing_id for entry in view.listings] == [linked]


def test_aggregate_details_not_editable_through_listing(
    services, store, clock, admin
) -> None:
    item = services.catalog.add_item(name="Hull C")
    aggregate_id = _aggregate_listing(store, clock, item.id)

    with pytest.raises(MarketValidationError, match="aggregate"):
        services.listings.update_listing(admin, aggregate_id, ListingUpdateDTO(title="x"))

    updated = services.listings.update_listing(admin, aggregate_id, ListingUpdateDTO(price=25))
    assert updated.type == "aggregate"
    assert store.listings.get_listing(aggregate_id)["price"] == 25


def test_public_aggregate_view_hides_internal_and_inactive(services, store, seller) -> None:
    item = services.catalog.add_item(name="Prospector")
    cid = store.contractors.add("MINERS")
    store.contractors.add_member(cid, "seller", [MANAGE_MARKET])
    public = services.listings.create_listing(
        seller, listing_payload(item_name="Prospector", price=300)
    ).listing.listing_id
    services.listings.create_listing(
        seller, listing_payload(item_name="Prospector", spectrum_id="MINERS", internal=True)
    )
    services.listings.create_listing(
        seller, listing_payload(item_name="Prospector", status="inactive")
    )
    archived = services.listings.create_listing(
        seller, listing_payload(item_name="Prospector")
    ).listing.listing_id
    services.listings.archive_listing(seller, archived)

    public_view = services.resolver.resolve_aggregate(item.id)
    full_view = services.resolver.resolve_aggregate(
        item.id, include_internal=True, include_inactive=True
    )

    assert [e.listing.listing_id for e in public_view.listings] == [public]
    assert len(full_view.listings) == 3
    assert archived not in {e.listing.listing_id for e in full_view.listings}


def test_unresolvable_photos_are_dropped(services, store, seller) -> None:
    created = services.listings.create_listing(
        seller, listing_payload(photos=[photo("a"), photo("b")])
    )
    first = store.photos.list_for_details(created.details.details_id)[0]
    store.resources.delete(str(first["resource_id"]))

    view = services.listings.get_listing(created.listing.listing_id)

    assert view.photos == [photo("b")]


def test_unknown_ids(services) -> None:
    with pytest.raises(NotFoundError):
        services.resolver.resolve("missing")
    with pytest.raises(NotFoundError):
        services.resolver.resolve_multiple("missing")
    with pytest.raises(NotFoundError):
        services.resolver.resolve_aggregate("missing")
