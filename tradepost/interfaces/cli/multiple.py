"""Multiple listing inspection."""

from __future__ import annotations

import json

import click
from rich.console import Console

from tradepost.interfaces.cli.context import CLIContext, market_services
from tradepost.interfaces.cli.listing import render_listing
from tradepost.services import MarketError

console = Console()


@click.group()
def multiple() -> None:
    """Inspect multiple listings."""


@multiple.command("show")
@click.argument("multiple_id")
@click.option("--json-output", is_flag=True, help="Output the group as JSON.")
@click.pass_context
def show_cmd(ctx: click.Context, multiple_id: str, json_output: bool) -> None:
    """Show MULTIPLE_ID with its member listings."""

    cli_context: CLIContext = ctx.obj["cli_context"]
    with market_services(cli_context) as services:
        try:
            group = services.grouping.get_multiple(multiple_id)
        except MarketError as exc:
            console.print(f"[red]{exc.message}[/red]")
            ctx.exit(1)

    if json_output:
        console.print(json.dumps(group.model_dump(mode="json"), indent=2))
        return
    render_listing(group)
