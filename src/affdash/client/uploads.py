from __future__ import annotations

from pathlib import Path
from typing import Any, BinaryIO

import httpx

from affdash.client.base import ApiError, BackendClient, error_text


UPLOAD_KINDS = ("ad", "order")


class UploadError(ApiError):
    pass


def validate_upload(filename: str | None, from_date: str | None, to_date: str | None) -> str | None:
    if not filename:
        return "Vui lòng chọn file CSV."
    if not (from_date or "").strip() or not (to_date or "").strip():
        return "Vui lòng chọn Từ ngày và Đến ngày."
    return None


async def upload_csv(
    client: BackendClient,
    *,
    file: BinaryIO | bytes,
    filename: str,
    kind: str,
    from_date: str,
    to_date: str,
) -> dict[str, Any]:
    """
    POST a CSV report to /csv/upload/{ad|order} as multipart form data
    (`file`, `fromDate`, `toDate`).
    """
    if kind not in UPLOAD_KINDS:
        raise UploadError(f"unknown upload kind: {kind}")

    try:
        resp = await client.request(
            "POST",
            f"/csv/upload/{kind}",
            files={"file": (filename, file, "text/csv")},
            data={"fromDate": from_date, "toDate": to_date},
        )
    except httpx.HTTPError as e:
        raise UploadError(f"Upload failed: {type(e).__name__}: {e}") from e

    if not resp.is_success:
        raise UploadError(error_text(resp) or f"Upload failed with status {resp.status_code}")

    try:
        body = resp.json()
    except ValueError:
        return {"message": "Upload successful"}
    if isinstance(body, dict):
        return body
    return {"message": "Upload successful", "result": body}


async def upload_csv_path(
    client: BackendClient,
    *,
    path: Path,
    kind: str,
    from_date: str,
    to_date: str,
) -> dict[str, Any]:
    with path.open("rb") as f:
        return await upload_csv(
            client,
            file=f.read(),
            filename=path.name,
            kind=kind,
            from_date=from_date,
            to_date=to_date,
        )
