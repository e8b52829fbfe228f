from __future__ import annotations

from typing import NoReturn

from fastapi import HTTPException
from services.api.app.services.order_api_base import (
    OrderApiError,
    OrderApiNotFoundError,
    OrderApiRejectedError,
    OrderApiUnavailableError,
)


def raise_order_api_http_error(e: Exception) -> NoReturn:
    if isinstance(e, OrderApiNotFoundError):
        raise HTTPException(status_code=404, detail=str(e)) from e

    if isinstance(e, OrderApiRejectedError):
        raise HTTPException(status_code=422, detail=e.detail) from e

    if isinstance(e, OrderApiUnavailableError):
        raise HTTPException(status_code=503, detail=str(e)) from e

    if isinstance(e, OrderApiError):
        raise HTTPException(status_code=502, detail=str(e)) from e

    raise HTTPException(status_code=500, detail="Internal Server Error") from e
