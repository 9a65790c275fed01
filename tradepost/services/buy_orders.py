"""Standing buy orders against catalog items and their fulfilment."""

from __future__ import annotations

from tradepost.domain.models import BuyOrder
from tradepost.infrastructure.db import MarketStore, parse_iso, to_iso
from tradepost.infrastructure.observability import get_logger, log_context, record_buy_order
from tradepost.services.collaborators import (
    CatalogLookup,
    Clock,
    OfferDesk,
    PermissionChecker,
    utcnow,
)
from tradepost.services.dto import Actor, BuyOrderCreateDTO, BuyOrderDTO, OfferResultDTO
from tradepost.services.errors import (
    InvalidStateError,
    MarketValidationError,
    NotFoundError,
    PermissionDeniedError,
)
from tradepost.services.permissions import MANAGE_ORDERS
from tradepost.services.resolver import buy_order_to_dto

_logger = get_logger(__name__)


def _format_amount(value: float) -> str:
    return f"{value:,.0f}" if float(value).is_integer() else f"{value:,.2f}"


class BuyOrderService:
    def __init__(
        self,
        store: MarketStore,
        catalog: CatalogLookup,
        permissions: PermissionChecker,
        offers: OfferDesk,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._permissions = permissions
        self._offers = offers
        self._clock = clock

    def create_buy_order(self, actor: Actor, payload: BuyOrderCreateDTO) -> BuyOrderDTO:
        if self._catalog.get_catalog_item(game_item_id=payload.game_item_id) is None:
            raise NotFoundError("Invalid listing")
        if payload.quantity < 1:
            raise MarketValidationError("Invalid quantity")
        if payload.price < 1:
            raise MarketValidationError("Invalid price")
        expiry = parse_iso(payload.expiry)
        if expiry is None or expiry < self._clock():
            raise MarketValidationError("Invalid expiry")

        with self._store.atomic():
            buy_order_id = self._store.buy_orders.create(
                game_item_id=payload.game_item_id,
                buyer_id=actor.user_id,
                quantity=payload.quantity,
                price=payload.price,
                expiry=to_iso(expiry),
            )
        with log_context(buy_order_id=buy_order_id, game_item_id=payload.game_item_id):
            _logger.info("Created buy order for %d at %.2f", payload.quantity, payload.price)
        record_buy_order("created")
        return buy_order_to_dto(self._require(buy_order_id))

    def fulfill_buy_order(
        self,
        actor: Actor,
        buy_order_id: str,
        contractor_spectrum_id: str | None = None,
    ) -> OfferResultDTO:
        """Mark the order fulfilled and hand a delivery offer to the offer desk.

        Fulfilment is terminal: a second call fails with InvalidStateError and
        never creates a second offer.
        """
        with log_context(buy_order_id=buy_order_id, fulfiller=actor.user_id):
            contractor_id: str | None = None
            if contractor_spectrum_id:
                contractor = self._permissions.get(spectrum_id=contractor_spectrum_id)
                if contractor is None:
                    raise NotFoundError("Invalid contractor")
                contractor_id = str(contractor["contractor_id"])
                if not self._permissions.has_permission(
                    contractor_id, actor.user_id, MANAGE_ORDERS
                ):
                    raise PermissionDeniedError("No permissions")

            with self._store.atomic(immediate=True):
                row = self._store.buy_orders.get(buy_order_id)
                now = self._clock()
                if row is None:
                    raise NotFoundError("Invalid buy order")
                order = BuyOrder.from_dict(row)
                if not order.is_open(now):
                    _logger.warning("Buy order is no longer open")
                    raise InvalidStateError("Invalid buy order")
                if order.buyer_id == actor.user_id:
                    raise MarketValidationError("Can't fulfill own order")
                if not self._store.buy_orders.mark_fulfilled(buy_order_id, to_iso(now)):
                    raise InvalidStateError("Invalid buy order")

                item = self._catalog.get_catalog_item(game_item_id=order.game_item_id)
                item_name = item["name"] if item else order.game_item_id
                description = (
                    f"Complete buy order for {order.buyer_id}\n"
                    f"- {item_name} ({_format_amount(order.price)} x{order.quantity})\n"
                    f"- Total: {_format_amount(order.total)}\n"
                )
                result = self._offers.create_offer(
                    {
                        "customer_id": order.buyer_id,
                        "assigned_id": None if contractor_id else actor.user_id,
                        "contractor_id": contractor_id,
                    },
                    {
                        "actor_id": actor.user_id,
                        "kind": "Delivery",
                        "cost": order.total,
                        "title": f"Complete Buy Order for {order.buyer_id}",
                        "description": description,
                    },
                    [],
                )
            _logger.info("Buy order fulfilled, total %.2f", order.total)
            record_buy_order("fulfilled")
            return OfferResultDTO(**result)

    def cancel_buy_order(self, actor: Actor, buy_order_id: str) -> BuyOrderDTO:
        """Soft-cancel by moving the expiry to now."""
        with log_context(buy_order_id=buy_order_id):
            with self._store.atomic():
                row = self._store.buy_orders.get(buy_order_id)
                now = self._clock()
                if row is None:
                    raise NotFoundError("Invalid buy order")
                order = BuyOrder.from_dict(row)
                if not order.is_open(now):
                    raise InvalidStateError("Invalid buy order")
                if order.buyer_id != actor.user_id:
                    raise InvalidStateError("No permissions")
                self._store.buy_orders.set_expiry(buy_order_id, to_iso(now))
            _logger.info("Buy order cancelled")
            record_buy_order("cancelled")
            return buy_order_to_dto(self._require(buy_order_id))

    def list_buy_orders(
        self, game_item_id: str, *, include_history: bool = False
    ) -> list[BuyOrderDTO]:
        if self._catalog.get_catalog_item(game_item_id=game_item_id) is None:
            raise NotFoundError("Catalog item not found")
        open_at = None if include_history else to_iso(self._clock())
        rows = self._store.buy_orders.list_by_game_item(game_item_id, open_at=open_at)
        return [buy_order_to_dto(r) for r in rows]

    def list_for_buyer(self, buyer_id: str) -> list[BuyOrderDTO]:
        return [buy_order_to_dto(r) for r in self._store.buy_orders.list_by_buyer(buyer_id)]

    def _require(self, buy_order_id: str) -> dict:
        row = self._store.buy_orders.get(buy_order_id)
        if row is None:
            raise NotFoundError("Invalid buy order")
        return row


__all__ = ["BuyOrderService"]
