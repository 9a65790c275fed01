"""Builders and fakes shared by the test modules."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from tradepost.infrastructure.db import to_iso
from tradepost.services.dto import ListingCreateDTO

CDN = "https://cdn.test"
PHOTO_HOST = "i.imgur.com"
START = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + timedelta(**delta)


class RecordingPublisher:
    def __init__(self) -> None:
        self.events: list[dict[str, Any]] = []

    async def __call__(self, payload: dict[str, Any]) -> None:
        self.events.append(payload)


def photo(name: str) -> str:
    return f"https://{PHOTO_HOST}/{name}.png"


def listing_payload(**overrides: Any) -> ListingCreateDTO:
    data: dict[str, Any] = {
        "price": 100.0,
        "title": "Aurora MR",
        "description": "Starter ship, lightly used",
        "sale_type": "sale",
        "item_type": "ship",
        "quantity_available": 3,
        "photos": [photo("aurora")],
    }
    data.update(overrides)
    return ListingCreateDTO(**data)


def auction_payload(clock: FrozenClock, **overrides: Any) -> ListingCreateDTO:
    data: dict[str, Any] = {
        "sale_type": "auction",
        "quantity_available": 1,
        "minimum_bid_increment": 10.0,
        "end_time": to_iso(clock.now + timedelta(days=2)),
    }
    data.update(overrides)
    return listing_payload(**data)
