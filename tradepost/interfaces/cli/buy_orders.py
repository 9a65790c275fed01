"""Buy order listing for a catalog item."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from tradepost.interfaces.cli.context import CLIContext, market_services
from tradepost.services import MarketError

console = Console()


@click.group("buy-orders")
def buy_orders() -> None:
    """Inspect standing buy orders."""


@buy_orders.command("list")
@click.argument("game_item_id")
@click.option("--history", is_flag=True, help="Include fulfilled and expired orders.")
@click.pass_context
def list_cmd(ctx: click.Context, game_item_id: str, history: bool) -> None:
    """List buy orders for GAME_ITEM_ID."""

    cli_context: CLIContext = ctx.obj["cli_context"]
    with market_services(cli_context) as services:
        try:
            orders = services.buy_orders.list_buy_orders(game_item_id, include_history=history)
        except MarketError as exc:
            console.print(f"[red]{exc.message}[/red]")
            ctx.exit(1)

    if not orders:
        console.print("[yellow]No buy orders found.[/yellow]")
        return

    table = Table(title="Buy orders")
    table.add_column("Buy order", style="bold")
    table.add_column("Buyer")
    table.add_column("Qty", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Expiry")
    table.add_column("Fulfilled")
    for order in orders:
        table.add_row(
            order.buy_order_id,
            order.buyer_id,
            str(order.quantity),
            f"{order.price:,.2f}",
            order.expiry,
            order.fulfilled_timestamp or "",
        )
    console.print(table)
