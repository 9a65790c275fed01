from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

from click.testing import CliRunner

from tests.factories import listing_payload
from tradepost.app.config import MarketSettings, build_resource_store
from tradepost.infrastructure.db import open_store, to_iso
from tradepost.interfaces.cli.__main__ import cli
from tradepost.services import MarketServices
from tradepost.services.dto import Actor, BuyOrderCreateDTO, MultipleCreateDTO


def _seed(db_file: Path, action):
    settings = MarketSettings(allowed_photo_domains=["i.imgur.com"])
    with open_store(str(db_file)) as store:
        services = MarketServices.build(
            store, build_resource_store(settings, store), policy=settings.listing_policy()
        )
        return action(services)


def _create_listing(services, **overrides) -> str:
    return services.listings.create_listing(
        Actor(user_id="seller"), listing_payload(**overrides)
    ).listing.listing_id


def test_add_and_list_catalog_items(tmp_path: Path) -> None:
    db_file = tmp_path / "market.db"
    runner = CliRunner()

    add_result = runner.invoke(
        cli, ["--db", str(db_file), "catalog", "add", "Gladius", "--item-type", "ship"]
    )

    assert add_result.exit_code == 0
    assert "Added catalog item" in add_result.output

    list_result = runner.invoke(cli, ["--db", str(db_file), "catalog", "list"])

    assert list_result.exit_code == 0
    assert "Gladius" in list_result.output
    assert "ship" in list_result.output


def test_add_duplicate_catalog_item(tmp_path: Path) -> None:
    db_file = tmp_path / "market.db"
    runner = CliRunner()

    first = runner.invoke(cli, ["--db", str(db_file), "catalog", "add", "Gladius"])
    duplicate = runner.invoke(cli, ["--db", str(db_file), "catalog", "add", "Gladius"])

    assert first.exit_code == 0
    assert duplicate.exit_code == 1
    assert "already exists" in duplicate.output


def test_empty_catalog(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli, ["--db", str(tmp_path / "market.db"), "catalog", "list"])

    assert result.exit_code == 0
    assert "No catalog items found" in result.output


def test_show_listing(tmp_path: Path) -> None:
    db_file = tmp_path / "market.db"
    listing_id = _seed(db_file, lambda s: _create_listing(s, title="Cutlass"))
    runner = CliRunner()

    table = runner.invoke(cli, ["--db", str(db_file), "listing", "show", listing_id])
    as_json = runner.invoke(
        cli, ["--db", str(db_file), "listing", "show", listing_id, "--json-output"]
    )

    assert table.exit_code == 0
    assert "Cutlass" in table.output
    assert "Expires" in table.output
    assert as_json.exit_code == 0
    assert '"type": "unique"' in as_json.output
    assert '"title": "Cutlass"' in as_json.output


def test_show_missing_listing(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        cli, ["--db", str(tmp_path / "market.db"), "listing", "show", "nope"]
    )

    assert result.exit_code == 1
    assert "Listing not found" in result.output


def test_archive_then_refresh(tmp_path: Path) -> None:
    db_file = tmp_path / "market.db"
    listing_id = _seed(db_file, _create_listing)
    runner = CliRunner()

    archived = runner.invoke(cli, ["--db", str(db_file), "listing", "archive", listing_id])
    again = runner.invoke(cli, ["--db", str(db_file), "listing", "archive", listing_id])
    refreshed = runner.invoke(cli, ["--db", str(db_file), "listing", "refresh", listing_id])

    assert archived.exit_code == 0
    assert "Archived listing" in archived.output
    assert again.exit_code == 1
    assert "already archived" in again.output
    assert refreshed.exit_code == 1
    assert "Cannot update archived listing" in refreshed.output


def test_non_admin_operator_needs_ownership(tmp_path: Path) -> None:
    db_file = tmp_path / "market.db"
    listing_id = _seed(db_file, _create_listing)

    result = CliRunner().invoke(
        cli,
        ["--db", str(db_file), "listing", "--user", "intruder", "--no-admin", "archive", listing_id],
    )

    assert result.exit_code == 1
    assert "not authorized" in result.output


def test_show_multiple(tmp_path: Path) -> None:
    db_file = tmp_path / "market.db"

    def group(services) -> str:
        a = _create_listing(services, title="Avenger")
        b = _create_listing(services, title="Titan")
        return services.grouping.create_multiple(
            Actor(user_id="seller"),
            MultipleCreateDTO(
                listings=[a, b],
                default_listing_id=a,
                title="Avenger bundle",
                item_type="ship",
                description="Both variants",
            ),
        ).multiple_id

    multiple_id = _seed(db_file, group)

    result = CliRunner().invoke(cli, ["--db", str(db_file), "multiple", "show", multiple_id])

    assert result.exit_code == 0
    assert "Avenger bundle" in result.output
    assert "Titan" in result.output


def test_list_buy_orders(tmp_path: Path) -> None:
    db_file = tmp_path / "market.db"

    def order(services) -> str:
        item = services.catalog.add_item(name="Laranite")
        services.buy_orders.create_buy_order(
            Actor(user_id="hauler"),
            BuyOrderCreateDTO(
                game_item_id=item.id,
                quantity=4,
                price=250,
                expiry=to_iso(datetime.now(timezone.utc) + timedelta(days=3)),
            ),
        )
        return item.id

    item_id = _seed(db_file, order)
    runner = CliRunner()

    result = runner.invoke(cli, ["--db", str(db_file), "buy-orders", "list", item_id])
    missing = runner.invoke(cli, ["--db", str(db_file), "buy-orders", "list", "nope"])

    assert result.exit_code == 0
    assert "hauler" in result.output
    assert missing.exit_code == 1
    assert "Catalog item not found" in missing.output
