from __future__ import annotations

import sqlite3
from pathlib import Path


SCHEMA_VERSION = 1


class LocalDB:
    """
    Local persistent storage for the dashboard client.
    Holds the session (bearer token + user record) and the CSV import log.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode = WAL;")
        return conn

    def init(self) -> None:
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS meta (
                  key TEXT PRIMARY KEY,
                  value TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS import_log (
                  id TEXT PRIMARY KEY,
                  kind TEXT NOT NULL,
                  filename TEXT NOT NULL,
                  from_date TEXT,
                  to_date TEXT,
                  status TEXT NOT NULL,
                  message TEXT,
                  created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_import_log_created
                ON import_log(created_at);
                """
            )
            conn.execute(
                "INSERT OR REPLACE INTO meta(key, value) VALUES(?, ?)",
                ("schema_version", str(SCHEMA_VERSION)),
            )

    def schema_version(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM meta WHERE key='schema_version'").fetchone()
            if not row:
                return 0
            try:
                return int(row["value"])
            except ValueError:
                return 0
