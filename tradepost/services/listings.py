"""Listing lifecycle: creation, edits, refresh, archival and purchases."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from tradepost.domain.models import Listing, ListingStatus, Owner, SaleType
from tradepost.infrastructure.db import MarketStore, new_id, parse_iso, to_iso
from tradepost.infrastructure.observability import get_logger, log_context
from tradepost.services.collaborators import (
    CatalogLookup,
    Clock,
    OfferDesk,
    PermissionChecker,
    ResourceStore,
    utcnow,
)
from tradepost.services.dto import (
    Actor,
    AggregateCompleteDTO,
    AggregateUpdateDTO,
    ListingCompleteDTO,
    ListingCreateDTO,
    ListingUpdateDTO,
    PhotoUploadDTO,
    PurchaseRequestDTO,
    PurchaseResultDTO,
    UniqueListingCompleteDTO,
)
from tradepost.services.errors import (
    InvalidStateError,
    MarketValidationError,
    NotFoundError,
    PermissionDeniedError,
)
from tradepost.services.permissions import SellerAccess
from tradepost.services.photos import PhotoPlan, PhotoReconciler
from tradepost.services.resolver import ListingResolver

_logger = get_logger(__name__)


@dataclass(frozen=True)
class ListingPolicy:
    placeholder_photo_url: str = (
        "https://media.robertsspaceindustries.com/default/placeholder.png"
    )
    max_photos: int = 5
    refresh_window_days: int = 3
    listing_lifetime_days: int = 30


def same_seller(listings: list[Listing]) -> bool:
    if not listings:
        return True
    first = listings[0].owner
    return all(listing.owner == first for listing in listings)


class ListingService:
    def __init__(
        self,
        store: MarketStore,
        resolver: ListingResolver,
        *,
        resources: ResourceStore,
        permissions: PermissionChecker,
        catalog: CatalogLookup,
        offers: OfferDesk,
        policy: ListingPolicy | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._resources = resources
        self._catalog = catalog
        self._offers = offers
        self._access = SellerAccess(permissions)
        self._permissions = permissions
        self.policy = policy or ListingPolicy()
        self._clock = clock
        self._photos = PhotoReconciler(store, resources, max_photos=self.policy.max_photos)

    # -- reads --------------------------------------------------------------

    def get_listing(self, listing_id: str) -> ListingCompleteDTO:
        return self._resolver.resolve(listing_id)

    def get_aggregate(self, game_item_id: str) -> AggregateCompleteDTO:
        return self._resolver.resolve_aggregate(game_item_id)

    def list_seller_listings(
        self, actor: Actor, *, spectrum_id: str | None = None, include_archived: bool = False
    ) -> list[ListingCompleteDTO]:
        """Every listing the actor (or their contractor) sells, groups collapsed."""
        if spectrum_id:
            contractor = self._permissions.get(spectrum_id=spectrum_id)
            if contractor is None:
                raise NotFoundError("Invalid contractor")
            contractor_id = str(contractor["contractor_id"])
            if not actor.is_admin and not self._permissions.is_member(contractor_id, actor.user_id):
                raise PermissionDeniedError("You are not a member of this contractor")
            owner = Owner(contractor_id=contractor_id)
        else:
            owner = Owner(user_id=actor.user_id)

        rows = self._store.listings.list_by_seller(
            user_seller_id=owner.user_id,
            contractor_seller_id=owner.contractor_id,
            include_archived=include_archived,
        )
        return self._collapse_groups(rows)

    def list_active_listings(
        self,
        viewer: Actor | None,
        *,
        user_id: str | None = None,
        spectrum_id: str | None = None,
    ) -> list[ListingCompleteDTO]:
        """A seller's storefront: active listings of one user or one contractor.

        Internal contractor listings are shown only to that contractor's
        members and to administrators.
        """
        if (user_id is None) == (spectrum_id is None):
            raise MarketValidationError("Give either a user or a contractor")
        include_internal = True
        if spectrum_id is not None:
            contractor = self._permissions.get(spectrum_id=spectrum_id)
            if contractor is None:
                raise NotFoundError("Invalid contractor")
            owner = Owner(contractor_id=str(contractor["contractor_id"]))
            include_internal = viewer is not None and (
                viewer.is_admin or self._permissions.is_member(owner.contractor_id, viewer.user_id)
            )
        else:
            owner = Owner(user_id=user_id)

        rows = self._store.listings.list_by_seller(
            user_seller_id=owner.user_id,
            contractor_seller_id=owner.contractor_id,
            active_only=True,
            include_internal=include_internal,
        )
        return self._collapse_groups(rows)

    # -- creation -----------------------------------------------------------

    def create_listing(self, actor: Actor, payload: ListingCreateDTO) -> UniqueListingCompleteDTO:
        try:
            sale_type = SaleType.from_string(payload.sale_type)
            status = ListingStatus.from_string(payload.status)
        except ValueError as exc:
            raise MarketValidationError(str(exc)) from exc
        if not sale_type.is_creatable:
            raise MarketValidationError(f"Cannot create {sale_type.value} listings directly")
        if status == ListingStatus.ARCHIVED:
            raise MarketValidationError("Cannot create an archived listing")
        for name in ("title", "description", "item_type"):
            value = getattr(payload, name)
            if not value or not value.strip():
                raise MarketValidationError(f"Missing required field: {name}")

        is_auction = sale_type == SaleType.AUCTION
        if payload.price < (1 if is_auction else 0):
            raise MarketValidationError("Invalid price")
        if payload.quantity_available < 1:
            raise MarketValidationError("Invalid quantity")

        seller = self._access.seller_for(actor, payload.spectrum_id)
        if payload.internal and not seller.is_contractor:
            raise MarketValidationError(
                "Internal listings can only be created for contractor listings"
            )

        photos = [p for p in payload.photos if p] or [self.policy.placeholder_photo_url]
        if len(photos) > self.policy.max_photos:
            raise MarketValidationError(
                f"A listing can have at most {self.policy.max_photos} photos"
            )
        if any(not self._resources.verify_external_resource(p) for p in photos):
            raise MarketValidationError("Invalid photo!")

        now = self._clock()
        end_time = None
        if is_auction:
            if payload.minimum_bid_increment is None or payload.minimum_bid_increment < 1:
                raise MarketValidationError("Invalid minimum bid increment")
            end_time = parse_iso(payload.end_time)
            if end_time is None or end_time < now:
                raise MarketValidationError("Invalid end time")

        game_item_id = None
        if payload.item_name:
            item = self._catalog.get_catalog_item(name=payload.item_name)
            if item is None:
                raise MarketValidationError("Invalid item name")
            game_item_id = item["id"]

        listing_id = new_id()
        plan = PhotoPlan(details_id="", tag=listing_id, to_create=photos)
        self._photos.create_resources(plan)
        try:
            with self._store.atomic():
                details_id = self._store.listings.create_details(
                    title=payload.title,
                    description=payload.description,
                    item_type=payload.item_type,
                    game_item_id=game_item_id,
                )
                self._store.listings.create_listing(
                    listing_id=listing_id,
                    sale_type=sale_type.value,
                    price=payload.price,
                    quantity_available=payload.quantity_available,
                    status=status.value,
                    expiration=to_iso(now + timedelta(days=self.policy.listing_lifetime_days)),
                    internal=payload.internal,
                    **seller.as_columns(),
                )
                self._store.listings.create_unique(
                    listing_id=listing_id, details_id=details_id, accept_offers=False
                )
                if is_auction:
                    self._store.listings.create_auction_details(
                        listing_id=listing_id,
                        minimum_bid_increment=float(payload.minimum_bid_increment),
                        end_time=to_iso(end_time),
                    )
                plan.details_id = details_id
                self._photos.associate(plan)
        except Exception:
            self._photos.discard(plan)
            raise

        with log_context(listing_id=listing_id, sale_type=sale_type.value):
            _logger.info("Created listing with %d photos", len(plan.created))
        return self._resolver.resolve_unique(listing_id)

    # -- edits --------------------------------------------------------------

    def update_listing(
        self, actor: Actor, listing_id: str, changes: ListingUpdateDTO
    ) -> ListingCompleteDTO:
        row, listing = self._load_managed(actor, listing_id)
        sent = changes.model_fields_set
        touches_details = bool(
            changes.title or changes.description or changes.item_type
        ) or "item_name" in sent

        if listing.is_archived:
            other_fields = sent - {"price", "quantity_available"}
            if not actor.is_admin or other_fields:
                raise InvalidStateError("Cannot update archived listing")
        if listing.is_auction and not actor.is_admin:
            raise InvalidStateError("Cannot update auction listings")
        if touches_details and listing.sale_type == SaleType.AGGREGATE:
            raise MarketValidationError("Can't update details for aggregate listing")
        if listing.is_auction and changes.price is not None:
            raise MarketValidationError("Cannot edit price of auction")
        if changes.minimum_bid_increment is not None:
            if not listing.is_auction:
                raise MarketValidationError("Cannot set bid increment for non auction")
            if changes.minimum_bid_increment < 1:
                raise MarketValidationError("Invalid minimum bid increment")
        if changes.price is not None and changes.price < 0:
            raise MarketValidationError("Invalid price")
        if changes.quantity_available is not None and changes.quantity_available < 0:
            raise MarketValidationError("Invalid quantity")
        if changes.internal and listing.contractor_seller_id is None:
            raise MarketValidationError(
                "Internal listings can only be created for contractor listings"
            )

        status = None
        if changes.status is not None:
            try:
                status = ListingStatus.from_string(changes.status).value
            except ValueError as exc:
                raise MarketValidationError(str(exc)) from exc

        game_item_id = None
        if changes.item_name:
            item = self._catalog.get_catalog_item(name=changes.item_name)
            if item is None:
                raise MarketValidationError("Invalid item name")
            game_item_id = item["id"]

        details_id = self._resolver.details_id_for(row)
        if details_id is None and (touches_details or changes.photos is not None):
            raise InvalidStateError("Listing has no details to update")

        plan = None
        if changes.photos is not None:
            plan = self._photos.plan(details_id, changes.photos, tag=listing_id)
            self._photos.create_resources(plan)

        with log_context(listing_id=listing_id, actor=actor.user_id):
            try:
                with self._store.atomic():
                    self._store.listings.update_listing(
                        listing_id,
                        status=status,
                        price=changes.price,
                        quantity_available=changes.quantity_available,
                        internal=changes.internal,
                    )
                    if changes.minimum_bid_increment is not None:
                        self._store.listings.update_auction_details(
                            listing_id, minimum_bid_increment=changes.minimum_bid_increment
                        )
                    if touches_details:
                        self._store.listings.update_details(
                            details_id,
                            clear_game_item=changes.unlinks_item,
                            title=changes.title,
                            description=changes.description,
                            item_type=changes.item_type,
                            game_item_id=game_item_id,
                        )
                    if plan is not None:
                        self._photos.associate(plan)
            except Exception:
                if plan is not None:
                    self._photos.discard(plan)
                raise
            if plan is not None:
                self._photos.cleanup(plan)
            _logger.info("Updated listing fields: %s", ", ".join(sorted(sent)) or "none")
        return self._resolver.resolve(listing_id)

    def add_photos(
        self, actor: Actor, listing_id: str, uploads: list[PhotoUploadDTO]
    ) -> ListingCompleteDTO:
        """Upload images to the CDN and attach them after the current photos."""
        row, listing = self._load_managed(actor, listing_id)
        if listing.is_archived:
            raise InvalidStateError("Cannot update archived listing")
        if listing.sale_type == SaleType.AGGREGATE:
            raise MarketValidationError("Can't update details for aggregate listing")
        details_id = self._resolver.details_id_for(row)
        if details_id is None:
            raise InvalidStateError("Listing has no details to update")

        plan = self._photos.plan_additions(
            details_id,
            len(uploads),
            tag=listing_id,
            placeholder_url=self.policy.placeholder_photo_url,
        )
        with log_context(listing_id=listing_id, actor=actor.user_id):
            self._photos.upload_resources(plan, uploads)
            try:
                with self._store.atomic():
                    self._photos.associate(plan)
            except Exception:
                self._photos.discard(plan)
                raise
            self._photos.cleanup(plan)
        return self._resolver.resolve(listing_id)

    def update_listing_quantity(
        self, actor: Actor, listing_id: str, quantity: int
    ) -> ListingCompleteDTO:
        _, listing = self._load_managed(actor, listing_id)
        if listing.is_archived and not actor.is_admin:
            raise InvalidStateError("Cannot update archived listing")
        if quantity < 0:
            raise MarketValidationError("Invalid quantity")
        with self._store.atomic():
            self._store.listings.update_listing(listing_id, quantity_available=quantity)
        with log_context(listing_id=listing_id):
            _logger.info("Quantity set to %d", quantity)
        return self._resolver.resolve(listing_id)

    def refresh_listing(self, actor: Actor, listing_id: str) -> ListingCompleteDTO:
        """Reset the expiration to now, allowed only inside the refresh window."""
        _, listing = self._load_managed(actor, listing_id)
        if listing.is_archived:
            raise InvalidStateError("Cannot update archived listing")
        now = self._clock()
        if not listing.can_refresh(now, self.policy.refresh_window_days):
            raise InvalidStateError("Too soon to refresh")
        with self._store.atomic():
            self._store.listings.update_listing(listing_id, expiration=to_iso(now))
        with log_context(listing_id=listing_id):
            _logger.info("Listing refreshed")
        return self._resolver.resolve(listing_id)

    def archive_listing(self, actor: Actor, listing_id: str) -> ListingCompleteDTO:
        _, listing = self._load_managed(actor, listing_id)
        if listing.is_archived:
            raise InvalidStateError("Listing is already archived")
        with self._store.atomic():
            self._store.listings.update_listing(listing_id, status=ListingStatus.ARCHIVED.value)
        with log_context(listing_id=listing_id):
            _logger.info("Listing archived")
        return self._resolver.resolve(listing_id)

    # -- purchases ----------------------------------------------------------

    def purchase_listings(self, actor: Actor, payload: PurchaseRequestDTO) -> PurchaseResultDTO:
        if not payload.items:
            raise MarketValidationError("Missing required fields")
        if payload.offer is not None and payload.offer < 0:
            raise MarketValidationError("Invalid offer")

        picked: list[tuple[Listing, int, str]] = []
        for item in payload.items:
            row = self._store.listings.get_listing(item.listing_id)
            if row is None:
                raise NotFoundError("Invalid listing")
            listing = Listing.from_dict(row)
            if not listing.is_active:
                raise InvalidStateError("Invalid listing")
            if listing.is_auction:
                raise InvalidStateError("Auction listings cannot be purchased directly")
            if item.quantity < 1 or item.quantity > listing.quantity_available:
                raise MarketValidationError("Invalid quantity")
            if listing.user_seller_id is not None and listing.user_seller_id == actor.user_id:
                raise PermissionDeniedError("You cannot buy your own item!")
            details_id = self._resolver.details_id_for(row)
            details = self._store.listings.get_details(details_id) if details_id else None
            picked.append((listing, item.quantity, details["title"] if details else listing.listing_id))

        if not same_seller([listing for listing, _, _ in picked]):
            raise MarketValidationError("All items must be from same seller")

        total = sum(quantity * listing.price for listing, quantity, _ in picked)
        cost = payload.offer if payload.offer is not None else total
        lines = [f"Complete the delivery of sold items to {actor.user_id}"]
        lines += [f"- {title} ({listing.price:g} x{quantity})" for listing, quantity, title in picked]
        lines.append(f"- Total: {total:g}")
        lines.append(f"- User Offer: {cost:g}")
        description = "\n".join(lines) + "\n"
        if payload.note:
            description += f"\nNote from buyer:\n> {payload.note}"

        seller = picked[0][0]
        with self._store.atomic():
            result = self._offers.create_offer(
                {
                    "customer_id": actor.user_id,
                    "assigned_id": seller.user_seller_id,
                    "contractor_id": seller.contractor_seller_id,
                },
                {
                    "actor_id": actor.user_id,
                    "kind": "Delivery",
                    "cost": cost,
                    "title": f"Items Sold to {actor.user_id}",
                    "description": description,
                },
                [(listing.listing_id, quantity) for listing, quantity, _ in picked],
            )
        with log_context(buyer=actor.user_id, offer_id=result["offer"]["id"]):
            _logger.info("Purchase of %d listings handed off, total %.2f", len(picked), cost)
        return PurchaseResultDTO(
            offer_id=str(result["offer"]["id"]),
            session_id=str(result["session"]["id"]),
            discord_invite=result.get("discord_invite"),
        )

    # -- catalog aggregates ---------------------------------------------------

    def update_aggregate(
        self, actor: Actor, game_item_id: str, payload: AggregateUpdateDTO
    ) -> AggregateCompleteDTO:
        """Edit a catalog item's details and replace its photo."""
        if not actor.is_admin:
            raise PermissionDeniedError("Only administrators can edit catalog items")
        item = self._catalog.get_catalog_item(game_item_id=game_item_id)
        if item is None:
            raise NotFoundError("Invalid item")
        details_id = item["details_id"]

        plan = None
        if payload.photo:
            if not self._resources.verify_external_resource(payload.photo):
                raise MarketValidationError("Invalid photo!")
            current = [str(p["resource_id"]) for p in self._store.photos.list_for_details(details_id)]
            plan = PhotoPlan(
                details_id=details_id, tag=game_item_id, to_create=[payload.photo], to_delete=current
            )
            self._photos.create_resources(plan)

        with log_context(game_item_id=game_item_id):
            try:
                with self._store.atomic():
                    if payload.title or payload.description:
                        self._store.listings.update_details(
                            details_id, title=payload.title, description=payload.description
                        )
                    if plan is not None:
                        self._photos.associate(plan)
            except Exception:
                if plan is not None:
                    self._photos.discard(plan)
                raise
            if plan is not None:
                self._photos.cleanup(plan)
            _logger.info("Catalog item updated")
        return self._resolver.resolve_aggregate(game_item_id, include_internal=True)

    # -- helpers ------------------------------------------------------------

    def _collapse_groups(self, rows: list[dict]) -> list[ListingCompleteDTO]:
        """Resolve rows into views, one entry per multiple however many members match."""
        results: list[ListingCompleteDTO] = []
        seen_multiples: set[str] = set()
        for row in rows:
            if row["sale_type"] == SaleType.MULTIPLE.value:
                membership = self._store.multiples.get_membership(row["listing_id"])
                if membership is None or membership["multiple_id"] in seen_multiples:
                    continue
                seen_multiples.add(membership["multiple_id"])
                results.append(self._resolver.resolve_multiple(membership["multiple_id"]))
                continue
            results.append(self._resolver.resolve(row["listing_id"]))
        return results

    def _load_managed(self, actor: Actor, listing_id: str) -> tuple[dict, Listing]:
        row = self._store.listings.get_listing(listing_id)
        if row is None:
            raise NotFoundError("Listing not found")
        listing = Listing.from_dict(row)
        self._access.require_manage(actor, listing.owner)
        return row, listing


__all__ = ["ListingPolicy", "ListingService", "same_seller"]
