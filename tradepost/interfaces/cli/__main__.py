"""Entry point for running the tradepost CLI.

Executing ``python -m tradepost.interfaces.cli`` invokes the top-level
group with every subcommand attached.
"""

import click

from tradepost.infrastructure.observability import configure_logging

from .buy_orders import buy_orders
from .catalog import catalog
from .context import build_cli_context
from .listing import listing
from .multiple import multiple


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--db", "db_path", default=None, help="Path to the SQLite database.")
@click.option("--log-level", default=None, help="Logging level (default from TRADEPOST_LOG_LEVEL).")
@click.pass_context
def cli(ctx: click.Context, db_path: str | None, log_level: str | None) -> None:
    """tradepost market operator tooling."""
    configure_logging(level=log_level.upper() if log_level else None)
    ctx.ensure_object(dict)
    ctx.obj["cli_context"] = build_cli_context(db_path)


cli.add_command(catalog)
cli.add_command(listing)
cli.add_command(multiple)
cli.add_command(buy_orders)


if __name__ == "__main__":
    cli()
