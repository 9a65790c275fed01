"""Market configuration.

The ``market`` section of ``config.json`` is validated into
:class:`MarketSettings`; everything has a default so an empty file works.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from tradepost.infrastructure.db import MarketStore, load_config
from tradepost.infrastructure.resources import (
    DEFAULT_ALLOWED_DOMAINS,
    LocalResourceStore,
    RemoteResourceStore,
)
from tradepost.services.collaborators import ResourceStore
from tradepost.services.listings import ListingPolicy


class MarketSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    cdn_base_url: str = "https://cdn.tradepost.local"
    allowed_photo_domains: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_DOMAINS)
    )
    placeholder_photo_url: str = ListingPolicy.placeholder_photo_url
    max_photos: int = Field(5, ge=1)
    refresh_window_days: int = Field(3, ge=0)
    listing_lifetime_days: int = Field(30, ge=1)
    resource_store: Literal["local", "remote"] = "local"
    resource_service_url: str | None = None
    resource_service_timeout: float = Field(10.0, gt=0)
    upload_dir: str = "uploads"

    def listing_policy(self) -> ListingPolicy:
        return ListingPolicy(
            placeholder_photo_url=self.placeholder_photo_url,
            max_photos=self.max_photos,
            refresh_window_days=self.refresh_window_days,
            listing_lifetime_days=self.listing_lifetime_days,
        )


def load_market_settings(config_path: Path | str | None = None) -> MarketSettings:
    """Read the ``market`` section of ``config.json``."""
    cfg = load_config(config_path)
    section = cfg.get("market", {}) if isinstance(cfg, dict) else {}
    return MarketSettings.model_validate(section or {})


def build_resource_store(
    settings: MarketSettings, store: MarketStore | None = None
) -> ResourceStore:
    """Pick the resource store adapter named by the settings.

    The local adapter keeps its rows in the store, so it needs one.
    """
    if settings.resource_store == "remote":
        if not settings.resource_service_url:
            raise ValueError("resource_service_url is required for the remote resource store")
        return RemoteResourceStore(
            settings.resource_service_url,
            cdn_base_url=settings.cdn_base_url,
            allowed_domains=settings.allowed_photo_domains,
            timeout=settings.resource_service_timeout,
        )
    if store is None:
        raise ValueError("The local resource store needs a market store")
    return LocalResourceStore(
        store.resources,
        cdn_base_url=settings.cdn_base_url,
        allowed_domains=settings.allowed_photo_domains,
        upload_dir=Path(settings.upload_dir).expanduser(),
    )


__all__ = ["MarketSettings", "build_resource_store", "load_market_settings"]
