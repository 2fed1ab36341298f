from __future__ import annotations

import logging

import httpx

from affdash.client.base import ApiError, BackendClient, error_text
from affdash.models import ShopSettings


log = logging.getLogger(__name__)

DEFAULT_SHOP_SETTINGS = ShopSettings(
    marketing_fee=0.01,
    sales_tax=0.10,
    name="Cửa hàng của tôi",
    description="Mô tả cửa hàng chuyên doanh Affiliate",
)

_JSON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


class SettingsError(ApiError):
    pass


async def get_settings(client: BackendClient) -> ShopSettings:
    try:
        resp = await client.request("GET", "/shop/settings", headers=_JSON_HEADERS)
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError("shop settings response is not an object")
    except (httpx.HTTPError, ValueError) as e:
        log.warning("shop settings request failed (%s: %s), using defaults", type(e).__name__, e)
        return DEFAULT_SHOP_SETTINGS
    return ShopSettings.from_api(data)


async def update_settings(client: BackendClient, settings: ShopSettings) -> ShopSettings:
    try:
        resp = await client.request("PUT", "/shop/settings", headers=_JSON_HEADERS, json=settings.to_api())
    except httpx.HTTPError as e:
        raise SettingsError(f"Failed to update shop settings: {type(e).__name__}") from e

    if not resp.is_success:
        raise SettingsError(error_text(resp) or "Failed to update shop settings")
    try:
        data = resp.json()
    except ValueError:
        return settings
    return ShopSettings.from_api(data) if isinstance(data, dict) else settings
