from __future__ import annotations

import logging
from threading import Lock

from affdash.client.base import BackendClient
from affdash.client.shop_settings import get_settings
from affdash.models import LoadingState, ShopSettings


log = logging.getLogger(__name__)


class ShopState:
    """
    Shared shop settings so every view can read fee/tax rates and the shop
    name without refetching.
    """

    def __init__(self, client: BackendClient) -> None:
        self.client = client
        self._lock = Lock()
        self._settings: ShopSettings | None = None
        self.state = LoadingState.IDLE

    @property
    def settings(self) -> ShopSettings | None:
        with self._lock:
            return self._settings

    @property
    def is_loading(self) -> bool:
        return self.state is LoadingState.LOADING

    def set(self, settings: ShopSettings | None) -> None:
        with self._lock:
            self._settings = settings

    def clear(self) -> None:
        self.set(None)
        self.state = LoadingState.IDLE

    async def refresh(self) -> None:
        self.state = LoadingState.LOADING
        try:
            self.set(await get_settings(self.client))
        except Exception as e:  # noqa: BLE001 - keep previous settings
            log.error("failed to refresh shop settings: %s: %s", type(e).__name__, e)
            self.state = LoadingState.ERROR
            return
        self.state = LoadingState.SUCCESS
