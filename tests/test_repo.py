from __future__ import annotations

import sqlite3
from pathlib import Path

from affdash.db import SCHEMA_VERSION, LocalDB
from affdash.repo import TOKEN_KEY, USER_KEY, Repo


def test_init_is_idempotent(tmp_path: Path) -> None:
    db_path = tmp_path / "nested" / "affdash.sqlite3"
    db = LocalDB(db_path)
    db.init()
    db.init()
    assert db_path.exists()
    assert db.schema_version() == SCHEMA_VERSION


def test_session_requires_token_and_user(tmp_path: Path) -> None:
    db_path = tmp_path / "affdash.sqlite3"
    LocalDB(db_path).init()
    repo = Repo(db_path)

    assert repo.get_session_user() is None
    repo.set_meta(USER_KEY, '{"id": "u1", "username": "linh"}')
    assert repo.get_session_user() is None

    repo.set_meta(TOKEN_KEY, "jwt-1")
    assert repo.get_session_user() == {"id": "u1", "username": "linh"}

    repo.set_meta(USER_KEY, "not json")
    assert repo.get_session_user() is None


def test_save_and_clear_session(tmp_path: Path) -> None:
    db_path = tmp_path / "affdash.sqlite3"
    LocalDB(db_path).init()
    repo = Repo(db_path)

    repo.save_session({"id": "u1", "username": "Đức"}, "jwt-1")
    repo.save_session({"id": "u2", "username": "an"}, "jwt-2")
    assert repo.get_session_token() == "jwt-2"
    assert repo.get_session_user() == {"id": "u2", "username": "an"}

    repo.clear_session()
    assert repo.get_session_token() is None
    assert repo.get_session_user() is None
    assert repo.get_meta("schema_version") is not None


def test_import_log_newest_first(tmp_path: Path) -> None:
    db_path = tmp_path / "affdash.sqlite3"
    LocalDB(db_path).init()
    repo = Repo(db_path)

    repo.record_import(kind="ad", filename="a.csv", from_date="2026-03-01", to_date="2026-03-02", status="success", message="ok")
    repo.record_import(kind="order", filename="o.csv", from_date="2026-03-01", to_date="2026-03-02", status="error", message="bad")
    repo.record_import(kind="ad", filename="b.csv", from_date=None, to_date=None, status="success", message=None)

    rows = repo.list_imports()
    assert [r["filename"] for r in rows] == ["b.csv", "o.csv", "a.csv"]
    assert [r["filename"] for r in repo.list_imports(kind="ad", limit=1)] == ["b.csv"]

    with sqlite3.connect(db_path) as conn:
        row = conn.execute("SELECT COUNT(*) FROM import_log WHERE status='error'").fetchone()
        assert row and int(row[0]) == 1


def test_delete_meta(tmp_path: Path) -> None:
    db_path = tmp_path / "affdash.sqlite3"
    LocalDB(db_path).init()
    repo = Repo(db_path)
    repo.set_meta("last_view", "dashboard")
    repo.delete_meta("last_view")
    assert repo.get_meta("last_view") is None
