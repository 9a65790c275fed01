from .manager import ensure_schema
from .migrations import CURRENT_SCHEMA_VERSION, MARKET_MIGRATIONS, SchemaMigrator

__all__ = [
    "CURRENT_SCHEMA_VERSION",
    "MARKET_MIGRATIONS",
    "ensure_schema",
    "SchemaMigrator",
]
