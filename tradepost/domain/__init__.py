"""Domain layer for tradepost.

Pure business logic shared by the services; nothing here touches sqlite,
HTTP or the CLI.
"""

from . import models

__all__ = ["models"]
