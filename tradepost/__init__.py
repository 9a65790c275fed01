"""
tradepost package initializer.

Backend for a virtual-goods marketplace: listings, auctions, grouped
"multiple" listings, catalog aggregates and standing buy orders.

``__version__`` is read from the installed distribution metadata.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("tradepost")
except PackageNotFoundError:
    # Running from a source checkout without ``pip install -e .``
    __version__ = "0.0.0.dev"

__all__: list[str] = ["__version__"]
