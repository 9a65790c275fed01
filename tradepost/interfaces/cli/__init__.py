"""CLI interface for tradepost.

This package is the home for all Click commands; run it with
``python -m tradepost.interfaces.cli`` or the ``tradepost`` script.
"""

from .__main__ import cli
from .buy_orders import buy_orders
from .catalog import catalog
from .listing import listing
from .multiple import multiple

__all__ = ["buy_orders", "catalog", "cli", "listing", "multiple"]
