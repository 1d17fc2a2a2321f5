"""Persistencia SQLite de la configuración de la app."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from pathlib import Path

from timekeeper.remote import DEFAULT_API_URL, DEFAULT_TIMEOUT_S

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS app_config (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


@dataclass(frozen=True)
class AppConfig:
    """Configuracion persistida de la app."""

    api_url: str = DEFAULT_API_URL
    export_dir: str = ""
    timeout_s: float = DEFAULT_TIMEOUT_S


class SQLiteStore:
    """Repositorio SQLite para la configuracion."""

    def __init__(self, db_path: Path) -> None:
        """Create store and ensure schema exists."""
        self._db_path = db_path
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()

    def load_config(self) -> AppConfig:
        """Devuelve configuracion guardada o defaults."""
        defaults = AppConfig()
        with self._connect() as conn:
            rows = conn.execute("SELECT key, value FROM app_config").fetchall()
        values = {row["key"]: row["value"] for row in rows}
        return AppConfig(
            api_url=values.get("api_url") or defaults.api_url,
            export_dir=values.get("export_dir", defaults.export_dir),
            timeout_s=_parse_timeout(values.get("timeout_s"), defaults.timeout_s),
        )

    def save_config(self, config: AppConfig) -> None:
        """Guarda la configuracion en tabla key/value."""
        payload = {
            "api_url": config.api_url,
            "export_dir": config.export_dir,
            "timeout_s": str(config.timeout_s),
        }
        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO app_config(key, value) VALUES(?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value
                """,
                payload.items(),
            )
            conn.commit()


def _parse_timeout(raw: str | None, default: float) -> float:
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default
