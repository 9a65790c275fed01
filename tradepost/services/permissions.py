"""Who may act on a listing or on behalf of a contractor."""

from __future__ import annotations

from tradepost.domain.models import Owner
from tradepost.services.collaborators import PermissionChecker
from tradepost.services.dto import Actor
from tradepost.services.errors import InvalidStateError, NotFoundError, PermissionDeniedError

MANAGE_MARKET = "manage_market"
MANAGE_ORDERS = "manage_orders"


class SellerAccess:
    def __init__(self, permissions: PermissionChecker) -> None:
        self._permissions = permissions

    def can_manage(self, actor: Actor, owner: Owner) -> bool:
        """Admins, the user seller, or a contractor member holding ``manage_market``."""
        if actor.is_admin:
            return True
        if owner.user_id is not None:
            return owner.user_id == actor.user_id
        if owner.contractor_id is not None:
            return self._permissions.has_permission(
                owner.contractor_id, actor.user_id, MANAGE_MARKET
            )
        return False

    def require_manage(self, actor: Actor, owner: Owner) -> None:
        if not self.can_manage(actor, owner):
            raise PermissionDeniedError("You are not authorized to modify this listing")

    def seller_for(self, actor: Actor, spectrum_id: str | None) -> Owner:
        """The seller a listing or group is created for.

        Without a spectrum id the actor sells as themselves; otherwise the
        contractor must exist, be active, and grant the actor ``manage_market``.
        """
        if not spectrum_id:
            return Owner(user_id=actor.user_id)
        contractor = self._permissions.get(spectrum_id=spectrum_id)
        if contractor is None:
            raise NotFoundError("Invalid contractor")
        if contractor.get("archived"):
            raise InvalidStateError("Archived contractors cannot create listings")
        contractor_id = str(contractor["contractor_id"])
        if not self._permissions.has_permission(contractor_id, actor.user_id, MANAGE_MARKET):
            raise PermissionDeniedError(
                "You are not authorized to create listings on behalf of this contractor!"
            )
        return Owner(contractor_id=contractor_id)


__all__ = ["MANAGE_MARKET", "MANAGE_ORDERS", "SellerAccess"]
