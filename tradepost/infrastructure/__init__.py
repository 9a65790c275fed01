"""Infrastructure layer for tradepost.

Holds the sqlite listing store, the image resource store adapters and the
observability helpers.
"""

from . import db, observability, resources

__all__ = ["db", "observability", "resources"]
