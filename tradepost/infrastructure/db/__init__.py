from .config import (DEFAULT_DB_TIMEOUT, DatabaseSettings, database_settings,
                     load_config)
from .connection import (DatabaseError, apply_pragmas, connect_memory,
                         get_connection, iso_utcnow, new_id, parse_iso,
                         to_iso)
from .schema import SchemaMigrator, ensure_schema
from .store import MarketStore, open_store

__all__ = [
    "DEFAULT_DB_TIMEOUT",
    "DatabaseError",
    "DatabaseSettings",
    "MarketStore",
    "apply_pragmas",
    "connect_memory",
    "database_settings",
    "get_connection",
    "iso_utcnow",
    "load_config",
    "new_id",
    "open_store",
    "parse_iso",
    "SchemaMigrator",
    "ensure_schema",
    "to_iso",
]
