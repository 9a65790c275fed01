from __future__ import annotations

import pytest

from tests.factories import CDN, PHOTO_HOST, FrozenClock, RecordingPublisher, photo
from tradepost.infrastructure.db import MarketStore
from tradepost.infrastructure.observability import reset_metrics
from tradepost.infrastructure.resources import LocalResourceStore
from tradepost.services import ListingPolicy, MarketServices
from tradepost.services.dto import Actor


@pytest.fixture(autouse=True)
def _clean_metrics():
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def store():
    market_store = MarketStore.in_memory()
    yield market_store
    market_store.conn.close()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def resources(store: MarketStore, tmp_path) -> LocalResourceStore:
    return LocalResourceStore(
        store.resources,
        cdn_base_url=CDN,
        allowed_domains=(PHOTO_HOST,),
        upload_dir=tmp_path / "uploads",
    )


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def services(store, resources, clock, publisher) -> MarketServices:
    return MarketServices.build(
        store,
        resources,
        policy=ListingPolicy(placeholder_photo_url=photo("placeholder")),
        event_publisher=publisher,
        clock=clock,
    )


@pytest.fixture
def seller() -> Actor:
    return Actor(user_id="seller")


@pytest.fixture
def buyer() -> Actor:
    return Actor(user_id="buyer")


@pytest.fixture
def admin() -> Actor:
    return Actor(user_id="root", is_admin=True)
