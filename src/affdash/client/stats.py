from __future__ import annotations

import logging

import httpx

from affdash.client.base import BackendClient
from affdash.models import DailyStats, Recommendation


log = logging.getLogger(__name__)

QUERY_TYPES = ("clickTime", "orderTime")


def normalize_query_type(raw: str | None) -> str:
    s = (raw or "").strip()
    return s if s in QUERY_TYPES else "clickTime"


async def fetch_dashboard_data(
    client: BackendClient,
    date_from: str | None = None,
    date_to: str | None = None,
    query_type: str = "clickTime",
) -> list[DailyStats]:
    """
    GET /stats for a date range. Returns an empty list when the backend is
    unreachable or answers with an error so the dashboard can still render.
    """
    params: dict[str, str] = {}
    if date_from:
        params["from"] = date_from
    if date_to:
        params["to"] = date_to
    params["type"] = normalize_query_type(query_type)
    try:
        resp = await client.request("GET", "/stats", params=params, headers={"Accept": "application/json"})
        if not resp.is_success:
            raise httpx.HTTPStatusError(
                f"stats API error: {resp.status_code} {resp.reason_phrase}",
                request=resp.request,
                response=resp,
            )
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        log.warning("stats request failed: %s: %s", type(e).__name__, e)
        return []

    if not isinstance(data, list):
        log.warning("stats response is not a list (%s)", type(data).__name__)
        return []
    return [DailyStats.from_api(d) for d in data if isinstance(d, dict)]


async def fetch_recommendations(client: BackendClient) -> list[Recommendation]:
    try:
        resp = await client.request("GET", "/recommendation", headers={"Accept": "application/json"})
        resp.raise_for_status()
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        log.warning("recommendation request failed: %s: %s", type(e).__name__, e)
        return []

    if not isinstance(data, list):
        return []
    return [Recommendation.from_api(r) for r in data if isinstance(r, dict)]
