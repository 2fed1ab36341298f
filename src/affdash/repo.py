from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any

from affdash.util import new_id, now_utc_iso


TOKEN_KEY = "auth_token"
USER_KEY = "auth_user"


class Repo:
    """
    Centralized access to the local SQLite store (sqlite3 only).
    Plays the role browser local storage plays for a single-page client.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode = WAL;")
        return conn

    def get_meta(self, key: str) -> str | None:
        with self.connect() as conn:
            row = conn.execute("SELECT value FROM meta WHERE key=?", (key,)).fetchone()
            return str(row["value"]) if row else None

    def set_meta(self, key: str, value: str) -> None:
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO meta(key, value) VALUES(?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (key, value),
            )

    def delete_meta(self, key: str) -> None:
        with self.connect() as conn:
            conn.execute("DELETE FROM meta WHERE key=?", (key,))

    # --- session ---

    def get_session_token(self) -> str | None:
        return self.get_meta(TOKEN_KEY) or None

    def get_session_user(self) -> dict[str, Any] | None:
        raw = self.get_meta(USER_KEY)
        token = self.get_session_token()
        if not raw or not token:
            return None
        try:
            user = json.loads(raw)
        except json.JSONDecodeError:
            return None
        return user if isinstance(user, dict) else None

    def save_session(self, user: dict[str, Any], token: str) -> None:
        with self.connect() as conn:
            for key, value in ((TOKEN_KEY, token), (USER_KEY, json.dumps(user, ensure_ascii=False))):
                conn.execute(
                    "INSERT INTO meta(key, value) VALUES(?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                    (key, value),
                )

    def clear_session(self) -> None:
        with self.connect() as conn:
            conn.execute("DELETE FROM meta WHERE key IN (?, ?)", (TOKEN_KEY, USER_KEY))

    # --- import log ---

    def record_import(
        self,
        *,
        kind: str,
        filename: str,
        from_date: str | None,
        to_date: str | None,
        status: str,
        message: str | None,
    ) -> str:
        import_id = new_id("imp")
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO import_log(id, kind, filename, from_date, to_date, status, message, created_at)
                VALUES(?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (import_id, kind, filename, from_date, to_date, status, message, now_utc_iso()),
            )
        return import_id

    def list_imports(self, *, kind: str | None = None, limit: int = 20) -> list[dict[str, Any]]:
        sql = "SELECT * FROM import_log"
        params: list[Any] = []
        if kind:
            sql += " WHERE kind=?"
            params.append(kind)
        sql += " ORDER BY created_at DESC, rowid DESC LIMIT ?"
        params.append(limit)
        with self.connect() as conn:
            rows = conn.execute(sql, params).fetchall()
            return [dict(r) for r in rows]
