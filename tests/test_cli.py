from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from affdash.cli import app
from affdash.db import LocalDB
from affdash.repo import Repo


runner = CliRunner()


@pytest.fixture()
def db_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "affdash.sqlite3"
    monkeypatch.setenv("AFFDASH_DB_PATH", str(path))
    monkeypatch.setenv("AFFDASH_API_URL", "http://127.0.0.1:9/api")
    return path


def _login(db_path: Path) -> None:
    LocalDB(db_path).init()
    Repo(db_path).save_session({"id": "u1", "username": "linh", "email": "linh@shop.vn"}, "jwt-1")


def test_db_init(db_path: Path) -> None:
    res = runner.invoke(app, ["db", "init"])
    assert res.exit_code == 0
    assert "OK db init" in res.output
    assert db_path.exists()


def test_whoami_requires_session(db_path: Path) -> None:
    res = runner.invoke(app, ["whoami"])
    assert res.exit_code == 2
    assert "ERROR: not logged in" in res.output

    _login(db_path)
    res = runner.invoke(app, ["whoami"])
    assert res.exit_code == 0
    assert json.loads(res.output)["username"] == "linh"


def test_logout(db_path: Path) -> None:
    _login(db_path)
    res = runner.invoke(app, ["logout"])
    assert res.exit_code == 0
    assert Repo(db_path).get_session_user() is None


def test_stats_rejects_bad_dates_and_type(db_path: Path) -> None:
    _login(db_path)
    res = runner.invoke(app, ["stats", "--start", "03/01/2026"])
    assert res.exit_code == 2
    assert "ERROR: start must be YYYY-MM-DD" in res.output

    res = runner.invoke(app, ["stats", "--type", "refundTime"])
    assert res.exit_code == 2
    assert "ERROR: type must be one of" in res.output


def test_import_requires_date_range(db_path: Path, tmp_path: Path) -> None:
    _login(db_path)
    csv_path = tmp_path / "ads.csv"
    csv_path.write_text("campaign,spent\n", encoding="utf-8")
    res = runner.invoke(app, ["import", "ad", str(csv_path), "--from", "2026-03-01", "--to", ""])
    assert res.exit_code == 2
    assert "Vui lòng chọn Từ ngày và Đến ngày." in res.output


def test_settings_set_range_check(db_path: Path) -> None:
    _login(db_path)
    res = runner.invoke(app, ["settings", "set", "--sales-tax", "120"])
    assert res.exit_code == 2
    assert "sales_tax must be between 0 and 100" in res.output


def test_import_history_lists_log(db_path: Path) -> None:
    _login(db_path)
    Repo(db_path).record_import(
        kind="order", filename="o.csv", from_date="2026-03-01", to_date="2026-03-02", status="success", message="ok"
    )
    res = runner.invoke(app, ["import", "history"])
    assert res.exit_code == 0
    assert json.loads(res.output)[0]["filename"] == "o.csv"
