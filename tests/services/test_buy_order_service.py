from __future__ import annotations

from datetime import timedelta

import pytest
from pydantic import ValidationError

from tradepost.infrastructure.db import to_iso
from tradepost.services import (
    InvalidStateError,
    MarketValidationError,
    NotFoundError,
    PermissionDeniedError,
)
from tradepost.services.dto import Actor, BuyOrderCreateDTO
from tradepost.services.permissions import MANAGE_ORDERS


@pytest.fixture
def item_id(services) -> str:
    return services.catalog.add_item(name="Quantanium", item_type="commodity").id


def _order(services, clock, item_id, actor=None, **overrides):
    data = dict(
        game_item_id=item_id,
        quantity=5,
        price=100,
        expiry=to_iso(clock.now + timedelta(days=7)),
    )
    data.update(overrides)
    return services.buy_orders.create_buy_order(
        actor or Actor(user_id="u1"), BuyOrderCreateDTO(**data)
    )


def test_fulfil_once(services, store, clock, item_id) -> None:
    order = _order(services, clock, item_id)
    fulfiller = Actor(user_id="u2")

    result = services.buy_orders.fulfill_buy_order(fulfiller, order.buy_order_id)

    assert result.offer["customer_id"] == "u1"
    assert result.offer["assigned_id"] == "u2"
    assert result.offer["cost"] == "500.0"
    assert "Quantanium (100 x5)" in result.offer["description"]
    assert result.session["id"]
    fulfilled = store.buy_orders.get(order.buy_order_id)
    assert fulfilled["fulfilled_timestamp"] == to_iso(clock.now)

    with pytest.raises(InvalidStateError, match="Invalid buy order"):
        services.buy_orders.fulfill_buy_order(fulfiller, order.buy_order_id)
    offers = store.conn.execute("SELECT COUNT(*) FROM offers").fetchone()[0]
    assert offers == 1


def test_cannot_fulfil_own_order(services, clock, item_id) -> None:
    order = _order(services, clock, item_id)

    with pytest.raises(MarketValidationError, match="Can't fulfill own order"):
        services.buy_orders.fulfill_buy_order(Actor(user_id="u1"), order.buy_order_id)


def test_cannot_fulfil_expired_order(services, clock, item_id) -> None:
    order = _order(services, clock, item_id)
    clock.advance(days=8)

    with pytest.raises(InvalidStateError):
        services.buy_orders.fulfill_buy_order(Actor(user_id="u2"), order.buy_order_id)


def test_fulfil_for_contractor(services, store, clock, item_id) -> None:
    contractor_id = store.contractors.add("HAUL")
    store.contractors.add_member(contractor_id, "u2", [MANAGE_ORDERS])
    store.contractors.add_member(contractor_id, "u3", [])
    order = _order(services, clock, item_id)

    with pytest.raises(PermissionDeniedError, match="No permissions"):
        services.buy_orders.fulfill_buy_order(Actor(user_id="u3"), order.buy_order_id, "HAUL")

    result = services.buy_orders.fulfill_buy_order(
        Actor(user_id="u2"), order.buy_order_id, "HAUL"
    )

    assert result.offer["contractor_id"] == contractor_id
    assert result.offer["assigned_id"] is None


def test_fulfil_unknown_contractor(services, clock, item_id) -> None:
    order = _order(services, clock, item_id)

    with pytest.raises(NotFoundError, match="Invalid contractor"):
        services.buy_orders.fulfill_buy_order(Actor(user_id="u2"), order.buy_order_id, "NOPE")


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"quantity": 0}, "Invalid quantity"),
        ({"price": 0.5}, "Invalid price"),
        ({"expiry": "2020-01-01T00:00:00Z"}, "Invalid expiry"),
        ({"expiry": "tomorrow"}, "Invalid expiry"),
    ],
)
def test_create_validation(services, clock, item_id, overrides, message) -> None:
    with pytest.raises(MarketValidationError, match=message):
        _order(services, clock, item_id, **overrides)


def test_create_for_unknown_item(services, clock) -> None:
    with pytest.raises(NotFoundError):
        _order(services, clock, "missing")


@pytest.mark.parametrize("price", [float("nan"), float("inf")])
def test_non_finite_price_is_rejected(services, clock, item_id, price) -> None:
    with pytest.raises(ValidationError, match="finite"):
        _order(services, clock, item_id, price=price)

    assert services.buy_orders.list_buy_orders(item_id, include_history=True) == []


def test_cancel_moves_expiry_to_now(services, clock, item_id) -> None:
    order = _order(services, clock, item_id)

    with pytest.raises(InvalidStateError, match="No permissions"):
        services.buy_orders.cancel_buy_order(Actor(user_id="u2"), order.buy_order_id)

    cancelled = services.buy_orders.cancel_buy_order(Actor(user_id="u1"), order.buy_order_id)

    assert cancelled.expiry == to_iso(clock.now)
    assert services.buy_orders.list_buy_orders(item_id) == []
    with pytest.raises(InvalidStateError):
        services.buy_orders.cancel_buy_order(Actor(user_id="u1"), order.buy_order_id)


def test_listing_orders_with_history(services, clock, item_id) -> None:
    cheap = _order(services, clock, item_id, price=50)
    rich = _order(services, clock, item_id, actor=Actor(user_id="u9"), price=200)
    services.buy_orders.fulfill_buy_order(Actor(user_id="u2"), cheap.buy_order_id)

    open_orders = services.buy_orders.list_buy_orders(item_id)
    history = services.buy_orders.list_buy_orders(item_id, include_history=True)

    assert [o.buy_order_id for o in open_orders] == [rich.buy_order_id]
    assert [o.buy_order_id for o in history] == [rich.buy_order_id, cheap.buy_order_id]
    assert [o.buy_order_id for o in services.buy_orders.list_for_buyer("u9")] == [
        rich.buy_order_id
    ]


def test_open_orders_appear_in_aggregate_view(services, clock, item_id) -> None:
    order = _order(services, clock, item_id)

    view = services.listings.get_aggregate(item_id)

    assert [o.buy_order_id for o in view.buy_orders] == [order.buy_order_id]
