from affdash.client.auth import AuthError, get_stored_user, login_user, logout_user, register_user
from affdash.client.base import ApiError, BackendClient
from affdash.client.mapping import (
    MappingError,
    get_order_links_with_mappings,
    get_unmapped_campaigns,
    map_campaign_to_order_link,
    remove_campaign_mapping,
)
from affdash.client.shop_settings import SettingsError, get_settings, update_settings
from affdash.client.stats import fetch_dashboard_data, fetch_recommendations
from affdash.client.uploads import UploadError, upload_csv

__all__ = [
    "ApiError",
    "AuthError",
    "BackendClient",
    "MappingError",
    "SettingsError",
    "UploadError",
    "fetch_dashboard_data",
    "fetch_recommendations",
    "get_order_links_with_mappings",
    "get_settings",
    "get_stored_user",
    "get_unmapped_campaigns",
    "login_user",
    "logout_user",
    "map_campaign_to_order_link",
    "register_user",
    "remove_campaign_mapping",
    "update_settings",
    "upload_csv",
]
