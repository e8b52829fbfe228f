from __future__ import annotations

import os

from services.api.app.services import order_api_mock
from services.api.app.services.order_api_base import OrderApi


def get_order_api() -> OrderApi:
    """Select the order persistence adapter based on env vars.

    Defaults to the in-memory mock so tests and local dev are deterministic unless explicitly
    configured otherwise.
    """

    mode = os.getenv("BACKOFFICE_ORDER_API", "mock").strip().lower()

    if mode == "mock":
        return order_api_mock.mock_order_api

    if mode == "http":
        from services.api.app.services.order_api_http import HttpOrderApi

        return HttpOrderApi.from_env()

    raise ValueError(f"Unknown BACKOFFICE_ORDER_API={mode!r}. Expected mock or http.")
