from __future__ import annotations

from typing import Any

import httpx

from affdash.repo import Repo


class ApiError(RuntimeError):
    """A backend call failed; the message is safe to show to the user."""


class BackendClient:
    """
    Thin wrapper around the dashboard backend REST API.

    Every call attaches `Authorization: Bearer <token>` when a session token is
    stored. No default Content-Type is forced so multipart uploads keep the
    boundary httpx generates.
    """

    def __init__(
        self,
        base_url: str,
        *,
        repo: Repo,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.repo = repo
        self.timeout = timeout
        self.transport = transport

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def auth_headers(self) -> dict[str, str]:
        token = self.repo.get_session_token()
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    async def request(
        self,
        method: str,
        path: str,
        *,
        authenticated: bool = True,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        hdrs: dict[str, str] = {}
        if authenticated:
            hdrs.update(self.auth_headers())
        if headers:
            hdrs.update(headers)
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            return await client.request(method, self.url(path), headers=hdrs, **kwargs)


def error_text(resp: httpx.Response) -> str:
    return resp.text.strip()
