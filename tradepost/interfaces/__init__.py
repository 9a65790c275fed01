"""Interface layer for tradepost.

Packages under ``tradepost.interfaces`` expose boundary adapters such as CLI
commands.
"""

from . import cli

__all__ = ["cli"]
