"""Database settings read from the project ``config.json``.

Only the keys the sqlite layer needs are interpreted here:

```json
{
  "paths": {"db_path": "tradepost.db"},
  "db_timeout_seconds": 30.0,
  "db": {"enable_wal": true, "foreign_keys": true}
}
```

Relative paths resolve against the directory holding the config file.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

DEFAULT_DB_TIMEOUT = 30.0
DEFAULT_DB_FILENAME = "tradepost.db"

_CONFIG_FILE = Path(__file__).resolve().parents[3] / "config.json"


def load_config(config_path: Path | str | None = None) -> Dict[str, Any]:
    """Return ``config.json`` as a dictionary, or an empty one when it is absent."""

    path = Path(config_path) if config_path is not None else _CONFIG_FILE
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return data if isinstance(data, dict) else {}


@dataclass(frozen=True)
class DatabaseSettings:
    db_path: Path
    timeout: float = DEFAULT_DB_TIMEOUT
    enable_wal: bool = True
    foreign_keys: bool = True

    @property
    def busy_timeout_ms(self) -> int:
        return int(self.timeout * 1000)


def _section(cfg: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = cfg.get(key)
    return value if isinstance(value, dict) else {}


def database_settings(config_path: Path | str | None = None) -> DatabaseSettings:
    """Resolve the database location and connection options."""

    cfg = load_config(config_path)
    root = Path(config_path).parent if config_path is not None else _CONFIG_FILE.parent

    db_path = Path(_section(cfg, "paths").get("db_path", DEFAULT_DB_FILENAME)).expanduser()
    if not db_path.is_absolute():
        db_path = (root / db_path).resolve()

    try:
        timeout = float(cfg.get("db_timeout_seconds", DEFAULT_DB_TIMEOUT))
    except (TypeError, ValueError):
        timeout = DEFAULT_DB_TIMEOUT

    db_cfg = _section(cfg, "db")
    return DatabaseSettings(
        db_path=db_path,
        timeout=timeout,
        enable_wal=bool(db_cfg.get("enable_wal", True)),
        foreign_keys=bool(db_cfg.get("foreign_keys", True)),
    )
