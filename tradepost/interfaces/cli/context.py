"""Shared wiring for CLI commands: where the database lives and how services are built."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterator

from tradepost.app.config import MarketSettings, build_resource_store, load_market_settings
from tradepost.infrastructure.db import DatabaseSettings, database_settings, open_store
from tradepost.services import MarketServices
from tradepost.services.dto import Actor


@dataclass(frozen=True)
class CLIContext:
    database: DatabaseSettings
    settings: MarketSettings = field(default_factory=MarketSettings)


@contextmanager
def market_services(cli_context: CLIContext) -> Iterator[MarketServices]:
    """Yield the market services over a freshly opened store."""

    with open_store(settings=cli_context.database) as store:
        resources = build_resource_store(cli_context.settings, store)
        try:
            yield MarketServices.build(
                store, resources, policy=cli_context.settings.listing_policy()
            )
        finally:
            close = getattr(resources, "close", None)
            if close is not None:
                close()


def operator_actor(user_id: str, admin: bool) -> Actor:
    return Actor(user_id=user_id, is_admin=admin)


def build_cli_context(db_path: str | Path | None = None) -> CLIContext:
    """Resolve configuration, letting ``--db`` override the configured database."""

    database = database_settings()
    if db_path is not None:
        database = replace(database, db_path=Path(db_path).expanduser())
    return CLIContext(database=database, settings=load_market_settings())
