from __future__ import annotations

from datetime import timedelta

import pytest
from pydantic import ValidationError

from tests.factories import START, auction_payload, listing_payload, photo
from tradepost.infrastructure.db import to_iso
from tradepost.services import (
    InvalidStateError,
    MarketValidationError,
    NotFoundError,
    PermissionDeniedError,
)
from tradepost.services.dto import (
    Actor,
    AggregateUpdateDTO,
    ListingUpdateDTO,
    PurchaseItemDTO,
    PurchaseRequestDTO,
)
from tradepost.services.permissions import MANAGE_MARKET


@pytest.fixture
def contractor_id(store):
    cid = store.contractors.add("ACME", name="Acme Hauling")
    store.contractors.add_member(cid, "seller", [MANAGE_MARKET])
    store.contractors.add_member(cid, "intern", [])
    return cid


class TestCreateListing:
    def test_creates_unique_listing(self, services, seller):
        result = services.listings.create_listing(seller, listing_payload())

        assert result.type == "unique"
        assert result.listing.sale_type == "unique"
        assert result.listing.user_seller_id == "seller"
        assert result.listing.contractor_seller_id is None
        assert result.listing.expiration == to_iso(START + timedelta(days=30))
        assert result.accept_offers is False
        assert result.details.title == "Aurora MR"
        assert result.photos == [photo("aurora")]

    def test_uses_placeholder_without_photos(self, services, seller):
        result = services.listings.create_listing(seller, listing_payload(photos=[]))

        assert result.photos == [photo("placeholder")]

    def test_rejects_photo_from_unknown_host(self, services, store, seller):
        with pytest.raises(MarketValidationError, match="Invalid photo!"):
            services.listings.create_listing(
                seller, listing_payload(photos=["https://evil.example/x.png"])
            )

        assert store.listings.list_by_seller(user_seller_id="seller") == []

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"price": -1}, "Invalid price"),
            ({"quantity_available": 0}, "Invalid quantity"),
            ({"title": "  "}, "title"),
            ({"sale_type": "multiple"}, "Cannot create multiple"),
            ({"sale_type": "barter"}, "Invalid sale type"),
            ({"status": "archived"}, "archived"),
        ],
    )
    def test_validation(self, services, seller, overrides, message):
        with pytest.raises(MarketValidationError, match=message):
            services.listings.create_listing(seller, listing_payload(**overrides))

    @pytest.mark.parametrize("price", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_price_is_rejected(self, price):
        with pytest.raises(ValidationError, match="finite"):
            listing_payload(price=price)
        with pytest.raises(ValidationError, match="finite"):
            ListingUpdateDTO(price=price)

    def test_creates_auction(self, services, seller, clock):
        result = services.listings.create_listing(seller, auction_payload(clock))

        assert result.type == "auction"
        assert result.accept_offers is False
        assert result.auction_details is not None
        assert result.auction_details.minimum_next_bid == 110
        assert result.bids == []

    def test_auction_needs_future_end_time(self, services, seller, clock):
        payload = auction_payload(clock, end_time=to_iso(clock.now - timedelta(hours=1)))
        with pytest.raises(MarketValidationError, match="Invalid end time"):
            services.listings.create_listing(seller, payload)

    def test_auction_needs_bid_increment(self, services, seller, clock):
        payload = auction_payload(clock, minimum_bid_increment=None)
        with pytest.raises(MarketValidationError, match="bid increment"):
            services.listings.create_listing(seller, payload)

    def test_auction_price_at_least_one(self, services, seller, clock):
        with pytest.raises(MarketValidationError, match="Invalid price"):
            services.listings.create_listing(seller, auction_payload(clock, price=0))

    def test_links_catalog_item_by_name(self, services, seller):
        item = services.catalog.add_item(name="Aurora MR", item_type="ship")

        result = services.listings.create_listing(seller, listing_payload(item_name="Aurora MR"))

        assert result.details.game_item_id == item.id
        assert result.details.item_name == "Aurora MR"

    def test_unknown_item_name(self, services, seller):
        with pytest.raises(MarketValidationError, match="Invalid item name"):
            services.listings.create_listing(seller, listing_payload(item_name="Nope"))

    def test_contractor_listing(self, services, seller, contractor_id):
        result = services.listings.create_listing(
            seller, listing_payload(spectrum_id="ACME", internal=True)
        )

        assert result.listing.contractor_seller_id == contractor_id
        assert result.listing.user_seller_id is None
        assert result.listing.internal is True

    def test_contractor_listing_needs_capability(self, services, contractor_id):
        with pytest.raises(PermissionDeniedError):
            services.listings.create_listing(
                Actor(user_id="intern"), listing_payload(spectrum_id="ACME")
            )

    def test_archived_contractor(self, services, store, seller):
        cid = store.contractors.add("OLD", archived=True)
        store.contractors.add_member(cid, "seller", [MANAGE_MARKET])

        with pytest.raises(InvalidStateError, match="Archived contractors"):
            services.listings.create_listing(seller, listing_payload(spectrum_id="OLD"))

    def test_unknown_contractor(self, services, seller):
        with pytest.raises(NotFoundError, match="Invalid contractor"):
            services.listings.create_listing(seller, listing_payload(spectrum_id="GHOST"))

    def test_internal_only_for_contractors(self, services, seller):
        with pytest.raises(MarketValidationError, match="Internal listings"):
            services.listings.create_listing(seller, listing_payload(internal=True))


class TestUpdateListing:
    def test_updates_fields_and_details(self, services, seller):
        listing_id = services.listings.create_listing(seller, listing_payload()).listing.listing_id

        result = services.listings.update_listing(
            seller,
            listing_id,
            ListingUpdateDTO(price=80, status="inactive", title="Aurora LN"),
        )

        assert result.listing.price == 80
        assert result.listing.status == "inactive"
        assert result.details.title == "Aurora LN"
        assert result.details.description == "Starter ship, lightly used"

    def test_other_users_cannot_update(self, services, seller, buyer):
        listing_id = services.listings.create_listing(seller, listing_payload()).listing.listing_id

        with pytest.raises(PermissionDeniedError):
            services.listings.update_listing(buyer, listing_id, ListingUpdateDTO(price=1))

    def test_contractor_member_with_capability_can_update(
        self, services, seller, contractor_id
    ):
        listing_id = services.listings.create_listing(
            seller, listing_payload(spectrum_id="ACME")
        ).listing.listing_id

        with pytest.raises(PermissionDeniedError):
            services.listings.update_listing(
                Actor(user_id="intern"), listing_id, ListingUpdateDTO(price=1)
            )
        result = services.listings.update_listing(seller, listing_id, ListingUpdateDTO(price=5))
        assert result.listing.price == 5

    def test_null_item_name_unlinks_catalog_item(self, services, seller):
        services.catalog.add_item(name="Aurora MR")
        listing_id = services.listings.create_listing(
            seller, listing_payload(item_name="Aurora MR")
        ).listing.listing_id

        untouched = services.listings.update_listing(
            seller, listing_id, ListingUpdateDTO(price=90)
        )
        assert untouched.details.item_name == "Aurora MR"

        result = services.listings.update_listing(
            seller, listing_id, ListingUpdateDTO(item_name=None)
        )
        assert result.details.game_item_id is None

    def test_auctions_are_admin_only(self, services, seller, admin, clock):
        listing_id = services.listings.create_listing(
            seller, auction_payload(clock)
        ).listing.listing_id

        with pytest.raises(InvalidStateError, match="Cannot update auction listings"):
            services.listings.update_listing(seller, listing_id, ListingUpdateDTO(title="x"))
        with pytest.raises(MarketValidationError, match="Cannot edit price of auction"):
            services.listings.update_listing(admin, listing_id, ListingUpdateDTO(price=500))

        result = services.listings.update_listing(
            admin, listing_id, ListingUpdateDTO(minimum_bid_increment=25)
        )
        assert result.auction_details.minimum_bid_increment == 25

    def test_bid_increment_only_for_auctions(self, services, seller):
        listing_id = services.listings.create_listing(seller, listing_payload()).listing.listing_id

        with pytest.raises(MarketValidationError, match="non auction"):
            services.listings.update_listing(
                seller, listing_id, ListingUpdateDTO(minimum_bid_increment=5)
            )

    def test_archived_listing_rejects_edits_except_admin_price(self, services, seller, admin):
        listing_id = services.listings.create_listing(seller, listing_payload()).listing.listing_id
        services.listings.archive_listing(seller, listing_id)

        with pytest.raises(InvalidStateError, match="Cannot update archived listing"):
            services.listings.update_listing(seller, listing_id, ListingUpdateDTO(price=1))
        with pytest.raises(InvalidStateError, match="Cannot update archived listing"):
            services.listings.update_listing(admin, listing_id, ListingUpdateDTO(title="x"))

        result = services.listings.update_listing(
            admin, listing_id, ListingUpdateDTO(price=1, quantity_available=0)
        )
        assert result.listing.price == 1
        assert result.listing.quantity_available == 0

    def test_archived_listing_rejects_photo_changes(self, services, seller, admin):
        created = services.listings.create_listing(seller, listing_payload())
        listing_id = created.listing.listing_id
        services.listings.archive_listing(seller, listing_id)

        for actor in (seller, admin):
            with pytest.raises(InvalidStateError, match="Cannot update archived listing"):
                services.listings.update_listing(
                    actor, listing_id, ListingUpdateDTO(photos=[photo("new")])
                )

        assert services.listings.get_listing(listing_id).photos == created.photos

    def test_rejects_negative_quantity(self, services, seller):
        listing_id = services.listings.create_listing(seller, listing_payload()).listing.listing_id

        with pytest.raises(MarketValidationError, match="Invalid quantity"):
            services.listings.update_listing(
                seller, listing_id, ListingUpdateDTO(quantity_available=-1)
            )


class TestQuantityRefreshArchive:
    def test_update_quantity(self, services, seller):
        listing_id = services.listings.create_listing(seller, listing_payload()).listing.listing_id

        result = services.listings.update_listing_quantity(seller, listing_id, 0)

        assert result.listing.quantity_available == 0
        with pytest.raises(MarketValidationError):
            services.listings.update_listing_quantity(seller, listing_id, -2)

    def test_archived_listing_quantity_is_frozen(self, services, seller):
        listing_id = services.listings.create_listing(seller, listing_payload()).listing.listing_id
        archived = services.listings.archive_listing(seller, listing_id)
        assert archived.listing.status == "archived"

        with pytest.raises(InvalidStateError, match="Cannot update archived listing"):
            services.listings.update_listing_quantity(seller, listing_id, 1)

    def test_archive_twice(self, services, seller):
        listing_id = services.listings.create_listing(seller, listing_payload()).listing.listing_id
        services.listings.archive_listing(seller, listing_id)

        with pytest.raises(InvalidStateError):
            services.listings.archive_listing(seller, listing_id)

    def test_refresh_window(self, services, seller, clock):
        listing_id = services.listings.create_listing(seller, listing_payload()).listing.listing_id

        with pytest.raises(InvalidStateError, match="Too soon to refresh"):
            services.listings.refresh_listing(seller, listing_id)

        clock.advance(days=5)
        result = services.listings.refresh_listing(seller, listing_id)

        assert result.listing.expiration == to_iso(clock.now)

    def test_missing_listing(self, services, seller):
        with pytest.raises(NotFoundError):
            services.listings.refresh_listing(seller, "missing")


class TestPurchase:
    def _listing(self, services, actor, **overrides) -> str:
        return services.listings.create_listing(
            actor, listing_payload(**overrides)
        ).listing.listing_id

    def test_purchase_hands_off_offer(self, services, store, seller, buyer):
        first = self._listing(services, seller, price=100, title="Aurora")
        second = self._listing(services, seller, price=75, title="Mustang")

        result = services.listings.purchase_listings(
            buyer,
            PurchaseRequestDTO(
                items=[
                    PurchaseItemDTO(listing_id=first, quantity=1),
                    PurchaseItemDTO(listing_id=second, quantity=2),
                ],
                note="Meet at Port Olisar",
            ),
        )

        assert result.result == "Success"
        items = store.offers.list_offer_listings(result.offer_id)
        assert {(i["listing_id"], i["quantity"]) for i in items} == {(first, 1), (second, 2)}
        row = store.conn.execute(
            "SELECT cost, title, description, customer_id, assigned_id FROM offers WHERE offer_id = ?",
            (result.offer_id,),
        ).fetchone()
        assert float(row[0]) == 250
        assert row[1] == "Items Sold to buyer"
        assert "Mustang (75 x2)" in row[2]
        assert "Port Olisar" in row[2]
        assert row[3] == "buyer"
        assert row[4] == "seller"

    def test_counter_offer_sets_cost(self, services, store, seller, buyer):
        listing_id = self._listing(services, seller)

        result = services.listings.purchase_listings(
            buyer,
            PurchaseRequestDTO(items=[PurchaseItemDTO(listing_id=listing_id, quantity=1)], offer=60),
        )

        cost = store.conn.execute(
            "SELECT cost FROM offers WHERE offer_id = ?", (result.offer_id,)
        ).fetchone()[0]
        assert float(cost) == 60

    def test_cannot_buy_own_item(self, services, seller):
        listing_id = self._listing(services, seller)

        with pytest.raises(PermissionDeniedError, match="You cannot buy your own item!"):
            services.listings.purchase_listings(
                seller,
                PurchaseRequestDTO(items=[PurchaseItemDTO(listing_id=listing_id, quantity=1)]),
            )

    def test_quantity_bounds(self, services, seller, buyer):
        listing_id = self._listing(services, seller, quantity_available=2)

        for quantity in (0, 3):
            with pytest.raises(MarketValidationError, match="Invalid quantity"):
                services.listings.purchase_listings(
                    buyer,
                    PurchaseRequestDTO(
                        items=[PurchaseItemDTO(listing_id=listing_id, quantity=quantity)]
                    ),
                )

    def test_items_from_one_seller(self, services, seller, buyer):
        mine = self._listing(services, seller)
        theirs = self._listing(services, Actor(user_id="someone-else"))

        with pytest.raises(MarketValidationError, match="All items must be from same seller"):
            services.listings.purchase_listings(
                buyer,
                PurchaseRequestDTO(
                    items=[
                        PurchaseItemDTO(listing_id=mine, quantity=1),
                        PurchaseItemDTO(listing_id=theirs, quantity=1),
                    ]
                ),
            )

    def test_inactive_listing(self, services, seller, buyer):
        listing_id = self._listing(services, seller, status="inactive")

        with pytest.raises(InvalidStateError):
            services.listings.purchase_listings(
                buyer,
                PurchaseRequestDTO(items=[PurchaseItemDTO(listing_id=listing_id, quantity=1)]),
            )

    def test_empty_purchase(self, services, buyer):
        with pytest.raises(MarketValidationError):
            services.listings.purchase_listings(buyer, PurchaseRequestDTO(items=[]))


class TestAggregate:
    def test_update_details_and_replace_photo(self, services, store, admin):
        item = services.catalog.add_item(name="Gladius", item_type="ship")

        first = services.listings.update_aggregate(
            admin,
            item.id,
            AggregateUpdateDTO(title="Gladius Valiant", photo=photo("gladius-1")),
        )
        assert first.details.title == "Gladius Valiant"
        assert first.photos == [photo("gladius-1")]
        (old,) = store.photos.list_for_details(item.details_id)

        second = services.listings.update_aggregate(
            admin, item.id, AggregateUpdateDTO(photo=photo("gladius-2"))
        )

        assert second.photos == [photo("gladius-2")]
        assert second.details.title == "Gladius Valiant"
        assert store.resources.get(str(old["resource_id"])) is None

    def test_update_aggregate_requires_admin(self, services, seller):
        item = services.catalog.add_item(name="Gladius")

        with pytest.raises(PermissionDeniedError):
            services.listings.update_aggregate(seller, item.id, AggregateUpdateDTO(title="x"))

    def test_unknown_item(self, services, admin):
        with pytest.raises(NotFoundError, match="Invalid item"):
            services.listings.update_aggregate(admin, "missing", AggregateUpdateDTO(title="x"))

    def test_aggregate_view_lists_linked_listings(self, services, seller):
        item = services.catalog.add_item(name="Aurora MR")
        linked = services.listings.create_listing(
            seller, listing_payload(item_name="Aurora MR")
        ).listing.listing_id
        services.listings.create_listing(seller, listing_payload())

        view = services.listings.get_aggregate(item.id)

        assert view.type == "aggregate"
        assert [entry.listing.listing_id for entry in view.listings] == [linked]


def test_list_seller_listings_collapses_groups(services, seller):
    from tradepost.services.dto import MultipleCreateDTO

    a = services.listings.create_listing(seller, listing_payload()).listing.listing_id
    b = services.listings.create_listing(seller, listing_payload()).listing.listing_id
    services.listings.create_listing(seller, listing_payload())
    services.grouping.create_multiple(
        seller,
        MultipleCreateDTO(
            listings=[a, b], default_listing_id=a, title="Bundle", item_type="ship", description="x"
        ),
    )

    results = services.listings.list_seller_listings(seller)

    assert sorted(r.type for r in results) == ["multiple", "unique"]


class TestStorefront:
    def test_contractor_internal_listings_are_for_members(self, services, seller, contractor_id):
        public = services.listings.create_listing(seller, listing_payload(spectrum_id="ACME"))
        internal = services.listings.create_listing(
            seller, listing_payload(spectrum_id="ACME", internal=True)
        )

        def visible(viewer):
            return {
                view.listing.listing_id
                for view in services.listings.list_active_listings(viewer, spectrum_id="ACME")
            }

        assert visible(None) == {public.listing.listing_id}
        assert visible(Actor(user_id="stranger")) == {public.listing.listing_id}
        assert visible(Actor(user_id="intern")) == {
            public.listing.listing_id,
            internal.listing.listing_id,
        }

    def test_user_storefront_skips_inactive_and_archived(self, services, seller):
        active = services.listings.create_listing(seller, listing_payload()).listing.listing_id
        services.listings.create_listing(seller, listing_payload(status="inactive"))
        archived = services.listings.create_listing(seller, listing_payload()).listing.listing_id
        services.listings.archive_listing(seller, archived)

        results = services.listings.list_active_listings(None, user_id="seller")

        assert [view.listing.listing_id for view in results] == [active]

    def test_needs_exactly_one_seller(self, services):
        with pytest.raises(MarketValidationError, match="either a user or a contractor"):
            services.listings.list_active_listings(None)
        with pytest.raises(MarketValidationError):
            services.listings.list_active_listings(None, user_id="u", spectrum_id="ACME")

    def test_unknown_contractor(self, services):
        with pytest.raises(NotFoundError, match="Invalid contractor"):
            services.listings.list_active_listings(None, spectrum_id="GHOST")
