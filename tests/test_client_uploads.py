from __future__ import annotations

import asyncio
from pathlib import Path

import httpx
import pytest

from affdash.client.base import BackendClient
from affdash.client.uploads import UploadError, upload_csv, upload_csv_path, validate_upload
from affdash.db import LocalDB
from affdash.repo import Repo


def _client(tmp_path: Path, handler) -> BackendClient:
    db_path = tmp_path / "affdash.sqlite3"
    LocalDB(db_path).init()
    repo = Repo(db_path)
    repo.save_session({"id": "u1", "username": "linh", "email": ""}, "jwt-1")
    return BackendClient("http://backend.test/api", repo=repo, transport=httpx.MockTransport(handler))


def test_validate_upload() -> None:
    assert validate_upload("", "2026-03-01", "2026-03-02") == "Vui lòng chọn file CSV."
    assert validate_upload("ads.csv", "2026-03-01", "") == "Vui lòng chọn Từ ngày và Đến ngày."
    assert validate_upload("ads.csv", "2026-03-01", "2026-03-02") is None


def test_upload_csv_posts_multipart(tmp_path: Path) -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["content_type"] = request.headers.get("content-type", "")
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = request.read()
        return httpx.Response(200, json={"message": "Imported 2 rows"})

    csv_path = tmp_path / "ads.csv"
    csv_path.write_text("campaign,spent\nSale A,1000\n", encoding="utf-8")

    client = _client(tmp_path, handler)
    res = asyncio.run(
        upload_csv_path(client, path=csv_path, kind="ad", from_date="2026-03-01", to_date="2026-03-02")
    )

    assert res == {"message": "Imported 2 rows"}
    assert seen["path"] == "/api/csv/upload/ad"
    assert seen["content_type"].startswith("multipart/form-data; boundary=")
    assert seen["auth"] == "Bearer jwt-1"
    body = seen["body"]
    assert b'name="file"; filename="ads.csv"' in body
    assert b'name="fromDate"' in body
    assert b"2026-03-02" in body
    assert b"Sale A,1000" in body


def test_upload_csv_plain_text_success(tmp_path: Path) -> None:
    client = _client(tmp_path, lambda request: httpx.Response(200, text="ok"))
    res = asyncio.run(
        upload_csv(client, file=b"a,b\n", filename="o.csv", kind="order", from_date="2026-03-01", to_date="2026-03-01")
    )
    assert res == {"message": "Upload successful"}


def test_upload_csv_error_carries_body(tmp_path: Path) -> None:
    client = _client(tmp_path, lambda request: httpx.Response(400, text="Invalid CSV header"))
    with pytest.raises(UploadError) as exc:
        asyncio.run(
            upload_csv(client, file=b"x", filename="o.csv", kind="order", from_date="2026-03-01", to_date="2026-03-01")
        )
    assert str(exc.value) == "Invalid CSV header"


def test_upload_csv_rejects_unknown_kind(tmp_path: Path) -> None:
    client = _client(tmp_path, lambda request: httpx.Response(200))
    with pytest.raises(UploadError):
        asyncio.run(
            upload_csv(client, file=b"x", filename="o.csv", kind="refund", from_date="2026-03-01", to_date="2026-03-01")
        )
