"""Catalog management CLI.

Registers the game items that aggregate views and buy orders refer to.
"""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from tradepost.interfaces.cli.context import CLIContext, market_services
from tradepost.services import CatalogItemExistsError

console = Console()


@click.group()
def catalog() -> None:
    """Manage catalog items."""


@catalog.command("add")
@click.argument("name")
@click.option("--description", default="", help="Description shown on the aggregate view.")
@click.option("--item-type", default="other", show_default=True, help="Item type label.")
@click.pass_context
def add_cmd(ctx: click.Context, name: str, description: str, item_type: str) -> None:
    """Add a catalog item called NAME."""

    cli_context: CLIContext = ctx.obj["cli_context"]
    with market_services(cli_context) as services:
        try:
            item = services.catalog.add_item(
                name=name, description=description, item_type=item_type
            )
        except CatalogItemExistsError:
            console.print(f"[red]Catalog item '{name}' already exists.[/red]")
            ctx.exit(1)

    console.print(f"[green]Added catalog item [bold]{item.name}[/bold] ({item.id})")


@catalog.command("list")
@click.pass_context
def list_cmd(ctx: click.Context) -> None:
    """List all catalog items."""

    cli_context: CLIContext = ctx.obj["cli_context"]
    with market_services(cli_context) as services:
        items = services.catalog.list_items()

    if not items:
        console.print("[yellow]No catalog items found.[/yellow]")
        return

    table = Table(title="Catalog")
    table.add_column("Name", style="bold")
    table.add_column("Type")
    table.add_column("Game item id")
    for item in items:
        table.add_row(item.name, item.item_type or "", item.id)
    console.print(table)
