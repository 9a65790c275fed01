"""Shared FastAPI dependencies for tradepost application components."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Iterator

from fastapi import Depends, Header, HTTPException, status

from tradepost.app.config import MarketSettings, build_resource_store, load_market_settings
from tradepost.infrastructure.db import MarketStore, open_store
from tradepost.services.collaborators import Clock, ResourceStore, utcnow
from tradepost.services.dto import Actor

__all__ = [
    "get_market_settings",
    "get_store",
    "get_resource_store",
    "get_clock",
    "get_actor",
    "get_optional_actor",
    # Annotated dependency types
    "ActorDep",
    "ClockDep",
    "MarketSettingsDep",
    "MarketStoreDep",
    "OptionalActorDep",
    "ResourceStoreDep",
]


@lru_cache(maxsize=1)
def get_market_settings() -> MarketSettings:
    return load_market_settings()


def get_store() -> Iterator[MarketStore]:
    """Provide a store over the configured database with the schema ensured.

    Uses check_same_thread=False to allow FastAPI to use the connection
    across different threads (required for async request handling).
    """

    with open_store(check_same_thread=False) as store:
        yield store


_remote_stores: dict[str, ResourceStore] = {}


def _remote_resource_store(settings: MarketSettings) -> ResourceStore:
    """One HTTP client per resource service URL for the process lifetime."""
    key = settings.resource_service_url or ""
    if key not in _remote_stores:
        _remote_stores[key] = build_resource_store(settings)
    return _remote_stores[key]


def get_resource_store(
    store: Annotated[MarketStore, Depends(get_store)],
    settings: Annotated[MarketSettings, Depends(get_market_settings)],
) -> ResourceStore:
    if settings.resource_store == "remote":
        return _remote_resource_store(settings)
    return build_resource_store(settings, store)


def get_clock() -> Clock:
    return utcnow


def get_actor(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> Actor:
    """The acting user, taken from the ``X-User-Id`` / ``X-User-Role`` headers."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header"
        )
    return Actor(user_id=x_user_id, is_admin=(x_user_role or "").lower() == "admin")


def get_optional_actor(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> Actor | None:
    """Like :func:`get_actor`, but anonymous requests get ``None``."""
    if not x_user_id:
        return None
    return get_actor(x_user_id, x_user_role)


# Annotated dependency types; use these instead of repeating Depends(...)
MarketSettingsDep = Annotated[MarketSettings, Depends(get_market_settings)]
MarketStoreDep = Annotated[MarketStore, Depends(get_store)]
ResourceStoreDep = Annotated[ResourceStore, Depends(get_resource_store)]
ClockDep = Annotated[Clock, Depends(get_clock)]
ActorDep = Annotated[Actor, Depends(get_actor)]
OptionalActorDep = Annotated[Actor | None, Depends(get_optional_actor)]
