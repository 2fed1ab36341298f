from __future__ import annotations

import httpx

from affdash.client.base import ApiError, BackendClient
from affdash.models import CampaignMapping, OrderLink


class MappingError(ApiError):
    pass


async def _call(client: BackendClient, method: str, path: str, message: str) -> httpx.Response:
    try:
        resp = await client.request(method, path)
    except httpx.HTTPError as e:
        raise MappingError(message) from e
    if not resp.is_success:
        raise MappingError(message)
    return resp


async def get_unmapped_campaigns(client: BackendClient) -> list[CampaignMapping]:
    message = "Không thể tải danh sách chiến dịch"
    resp = await _call(client, "GET", "/mapping/campaigns", message)
    try:
        data = resp.json()
    except ValueError as e:
        raise MappingError(message) from e
    return [CampaignMapping.from_api(c) for c in (data or []) if isinstance(c, dict)]


async def get_order_links_with_mappings(client: BackendClient) -> list[OrderLink]:
    message = "Không thể tải danh sách liên kết đơn hàng"
    resp = await _call(client, "GET", "/mapping/orderLinks", message)
    try:
        data = resp.json()
    except ValueError as e:
        raise MappingError(message) from e
    return [OrderLink.from_api(link) for link in (data or []) if isinstance(link, dict)]


async def map_campaign_to_order_link(client: BackendClient, campaign_id: int, order_link_id: int) -> None:
    await _call(
        client,
        "POST",
        f"/mapping/campaigns/{int(campaign_id)}/orderLinks/{int(order_link_id)}",
        "Lỗi khi gán chiến dịch",
    )


async def remove_campaign_mapping(client: BackendClient, campaign_id: int) -> None:
    await _call(client, "DELETE", f"/mapping/campaigns/{int(campaign_id)}", "Lỗi khi gỡ gán chiến dịch")


def filter_order_links(links: list[OrderLink], search: str) -> list[OrderLink]:
    """Case-insensitive match on the link name or any mapped campaign name."""
    term = (search or "").strip().lower()
    if not term:
        return list(links)
    return [
        link
        for link in links
        if term in link.name.lower() or any(term in c.name.lower() for c in link.campaigns)
    ]
