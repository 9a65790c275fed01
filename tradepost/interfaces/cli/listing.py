"""Listing inspection and operator actions."""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.table import Table

from tradepost.interfaces.cli.context import CLIContext, market_services, operator_actor
from tradepost.services import MarketError
from tradepost.services.dto import (
    AggregateCompleteDTO,
    ListingCompleteDTO,
    ListingDTO,
    MultipleCompleteDTO,
)

console = Console()


def _seller(listing: ListingDTO | MultipleCompleteDTO) -> str:
    if listing.contractor_seller_id:
        return f"contractor:{listing.contractor_seller_id}"
    return listing.user_seller_id or "-"


def _listings_table(title: str, rows: list[tuple[ListingDTO, str]]) -> Table:
    table = Table(title=title)
    table.add_column("Listing", style="bold")
    table.add_column("Title")
    table.add_column("Price", justify="right")
    table.add_column("Qty", justify="right")
    table.add_column("Status")
    table.add_column("Seller")
    for listing, label in rows:
        table.add_row(
            listing.listing_id,
            label,
            f"{listing.price:,.2f}",
            str(listing.quantity_available),
            listing.status,
            _seller(listing),
        )
    return table


def render_listing(complete: ListingCompleteDTO) -> None:
    """Print any resolved listing shape as rich tables."""

    if isinstance(complete, MultipleCompleteDTO):
        console.print(
            f"[bold]{complete.details.title}[/bold] (multiple {complete.multiple_id}, "
            f"default {complete.default_listing_id})"
        )
        console.print(
            _listings_table(
                "Members",
                [(m.listing, m.details.title) for m in complete.listings],
            )
        )
        return

    if isinstance(complete, AggregateCompleteDTO):
        console.print(
            f"[bold]{complete.details.title}[/bold] (catalog item {complete.game_item_id})"
        )
        console.print(
            _listings_table(
                "Listings",
                [(entry.listing, complete.details.title) for entry in complete.listings],
            )
        )
        console.print(f"{len(complete.buy_orders)} open buy order(s)")
        return

    console.print(
        _listings_table(
            complete.type.capitalize(), [(complete.listing, complete.details.title)]
        )
    )
    if complete.auction_details is not None:
        auction = complete.auction_details
        console.print(
            f"Auction ends {auction.end_time} | current {auction.current_price:,.2f} "
            f"| next bid at least {auction.minimum_next_bid:,.2f} | {len(complete.bids)} bid(s)"
        )
    if complete.listing.expiration:
        console.print(f"Expires {complete.listing.expiration}")


@click.group()
@click.option("--user", "user_id", default="operator", show_default=True, help="Acting user id.")
@click.option("--admin/--no-admin", default=True, show_default=True, help="Act as administrator.")
@click.pass_context
def listing(ctx: click.Context, user_id: str, admin: bool) -> None:
    """Inspect listings and run operator actions on them."""

    ctx.obj["actor"] = operator_actor(user_id, admin)


@listing.command("show")
@click.argument("listing_id")
@click.option("--json-output", is_flag=True, help="Output the listing as JSON.")
@click.pass_context
def show_cmd(ctx: click.Context, listing_id: str, json_output: bool) -> None:
    """Show LISTING_ID resolved to its unique, multiple or aggregate view."""

    cli_context: CLIContext = ctx.obj["cli_context"]
    with market_services(cli_context) as services:
        try:
            complete = services.listings.get_listing(listing_id)
        except MarketError as exc:
            console.print(f"[red]{exc.message}[/red]")
            ctx.exit(1)

    if json_output:
        console.print(json.dumps(complete.model_dump(mode="json"), indent=2))
        return
    render_listing(complete)


@listing.command("refresh")
@click.argument("listing_id")
@click.pass_context
def refresh_cmd(ctx: click.Context, listing_id: str) -> None:
    """Reset the expiration of LISTING_ID."""

    cli_context: CLIContext = ctx.obj["cli_context"]
    with market_services(cli_context) as services:
        try:
            services.listings.refresh_listing(ctx.obj["actor"], listing_id)
        except MarketError as exc:
            console.print(f"[red]{exc.message}[/red]")
            ctx.exit(1)

    console.print(f"[green]Refreshed listing [bold]{listing_id}[/bold]")


@listing.command("archive")
@click.argument("listing_id")
@click.pass_context
def archive_cmd(ctx: click.Context, listing_id: str) -> None:
    """Archive LISTING_ID."""

    cli_context: CLIContext = ctx.obj["cli_context"]
    with market_services(cli_context) as services:
        try:
            services.listings.archive_listing(ctx.obj["actor"], listing_id)
        except MarketError as exc:
            console.print(f"[red]{exc.message}[/red]")
            ctx.exit(1)

    console.print(f"[green]Archived listing [bold]{listing_id}[/bold]")
