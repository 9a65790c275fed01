from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

from tradepost.infrastructure.db import (
    DEFAULT_DB_TIMEOUT,
    database_settings,
    get_connection,
    load_config,
)


def _write_config(tmp_path: Path, payload: dict) -> Path:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_missing_config_yields_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "absent.json"

    settings = database_settings(config_path)

    assert load_config(config_path) == {}
    assert settings.db_path == (tmp_path / "tradepost.db").resolve()
    assert settings.timeout == DEFAULT_DB_TIMEOUT
    assert settings.enable_wal and settings.foreign_keys


def test_relative_paths_resolve_against_config_dir(tmp_path: Path) -> None:
    config_path = _write_config(
        tmp_path,
        {
            "paths": {"db_path": "data/market.db"},
            "db_timeout_seconds": 2.5,
            "db": {"enable_wal": False},
        },
    )

    settings = database_settings(config_path)

    assert settings.db_path == (tmp_path / "data" / "market.db").resolve()
    assert settings.timeout == 2.5
    assert settings.busy_timeout_ms == 2500
    assert settings.enable_wal is False
    assert settings.foreign_keys is True


def test_unparseable_timeout_falls_back(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path, {"db_timeout_seconds": "soon", "db": "yes"})

    settings = database_settings(config_path)

    assert settings.timeout == DEFAULT_DB_TIMEOUT
    assert settings.enable_wal is True


def test_get_connection_applies_settings(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path, {"paths": {"db_path": "nested/market.db"}})
    settings = database_settings(config_path)

    with get_connection(settings=settings) as conn:
        foreign_keys = conn.execute("PRAGMA foreign_keys").fetchone()[0]
        journal = conn.execute("PRAGMA journal_mode").fetchone()[0]

    assert settings.db_path.exists()
    assert foreign_keys == 1
    assert journal.lower() == "wal"


def test_explicit_path_overrides_settings(tmp_path: Path) -> None:
    settings = replace(database_settings(tmp_path / "absent.json"), enable_wal=False)
    target = tmp_path / "other.db"

    with get_connection(target, settings=settings) as conn:
        journal = conn.execute("PRAGMA journal_mode").fetchone()[0]

    assert target.exists()
    assert journal.lower() != "wal"
