from __future__ import annotations

import logging
import os
import threading
from datetime import date, datetime

import httpx

from packages.shared.schemas.order_v1 import OrderStatusV1, PaymentMethodV1, PaymentTypeV1
from services.api.app.services.order_api_base import (
    OrderApiError,
    OrderApiNotFoundError,
    OrderApiRejectedError,
    OrderApiUnavailableError,
    ProductRecord,
    StoredOrder,
    SubmitResult,
    SupplierRecord,
)
from services.api.app.services.pricing import as_number, parse_int_prefix

logger = logging.getLogger("backoffice.order_api")

# One client per (base_url, token, timeout); closed at app shutdown.
_SHARED: dict[tuple[str, str | None, float], HttpOrderApi] = {}
_SHARED_LOCK = threading.Lock()

# The persistence API speaks the back-office's Portuguese labels.
_STATUS_FROM_API = {
    "Pendente": OrderStatusV1.PENDING,
    "Produção": OrderStatusV1.PRODUCTION,
    "Trânsito": OrderStatusV1.IN_TRANSIT,
    "Completo": OrderStatusV1.COMPLETED,
    "Cancelado": OrderStatusV1.CANCELLED,
}
_METHOD_TO_API = {
    PaymentMethodV1.PIX.value: "Pix",
    PaymentMethodV1.CARD.value: "Cartão",
    PaymentMethodV1.CASH.value: "Dinheiro",
}
_TYPE_TO_API = {
    PaymentTypeV1.FULL.value: "À Vista",
    PaymentTypeV1.INSTALLMENTS.value: "Parcelado",
}
_METHOD_FROM_API = {v: k for k, v in _METHOD_TO_API.items()}
_TYPE_FROM_API = {v: k for k, v in _TYPE_TO_API.items()}


class HttpOrderApi:
    vendor = "ORDER_API_HTTP"

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout_s: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self._base_url,
            headers=headers,
            timeout=timeout_s,
            transport=transport,
        )

    @classmethod
    def from_env(cls) -> HttpOrderApi:
        base_url = os.getenv("BACKOFFICE_ORDER_API_URL", "").strip()
        if not base_url:
            raise ValueError("BACKOFFICE_ORDER_API_URL is required when BACKOFFICE_ORDER_API=http")

        token = os.getenv("BACKOFFICE_ORDER_API_TOKEN", "").strip() or None
        timeout_s = float(os.getenv("BACKOFFICE_ORDER_API_TIMEOUT", "10"))

        key = (base_url, token, timeout_s)
        with _SHARED_LOCK:
            api = _SHARED.get(key)
            if api is None:
                api = _SHARED[key] = cls(base_url=base_url, token=token, timeout_s=timeout_s)
        return api

    def close(self) -> None:
        self._client.close()

    def list_suppliers(self) -> list[SupplierRecord]:
        data = self._request("GET", "/api/suppliers")
        return [
            SupplierRecord(
                id=str(s.get("id")),
                name=str(s.get("name") or s.get("trade_name") or s.get("company_name") or ""),
            )
            for s in data.get("suppliers") or []
        ]

    def list_products(self, query: str = "") -> list[ProductRecord]:
        params = {"search": query.strip()} if query.strip() else None
        data = self._request("GET", "/api/products", params=params)
        return [
            ProductRecord(
                id=str(p.get("id")),
                sku=str(p.get("sku") or ""),
                name=str(p.get("name") or ""),
                cost_price=as_number(p.get("cost_price")),
                image_url=p.get("image_url") or None,
            )
            for p in data.get("products") or []
        ]

    def get_order(self, order_id: str) -> StoredOrder:
        data = self._request("GET", f"/api/orders/{order_id}", resource="Order", resource_id=order_id)
        order = data.get("order") or {}

        return StoredOrder(
            id=str(order.get("id", order_id)),
            order_number=str(order.get("order_number") or ""),
            supplier_id=str(order["supplier_id"]) if order.get("supplier_id") is not None else None,
            status=_STATUS_FROM_API.get(order.get("status"), OrderStatusV1.PENDING).value,
            created_at=_parse_timestamp(order.get("created_at")),
            discount=as_number(order.get("discount")),
            shipping_cost=as_number(order.get("shipping_cost")),
            other_costs=as_number(order.get("other_costs")),
            payment_method=_METHOD_FROM_API.get(order.get("payment_method"), PaymentMethodV1.PIX.value),
            payment_type=_TYPE_FROM_API.get(order.get("payment_type"), PaymentTypeV1.FULL.value),
            is_grouped=order.get("is_grouped") in (1, True, "1"),
            items=[_item_from_api(it) for it in data.get("items") or []],
            installments=_installments_from_api(data.get("installments") or []),
        )

    def next_order_number(self, user_id: str) -> str:
        del user_id  # the API derives the prefix from the bearer token
        data = self._request("GET", "/api/orders/next-number")
        return str(data.get("order_number") or "")

    def create_order(self, payload: dict) -> SubmitResult:
        data = self._request("POST", "/api/orders", json=_payload_to_api(payload))
        return SubmitResult(
            order_id=str(data.get("order_id")),
            order_number=str(data.get("order_number") or payload.get("order_number") or ""),
        )

    def update_order(self, order_id: str, payload: dict) -> SubmitResult:
        self._request(
            "PUT",
            f"/api/orders/{order_id}",
            json=_payload_to_api(payload),
            resource="Order",
            resource_id=order_id,
        )
        return SubmitResult(order_id=order_id, order_number=str(payload.get("order_number") or ""))

    def _request(
        self,
        method: str,
        path: str,
        *,
        resource: str = "Resource",
        resource_id: str = "",
        **kwargs: object,
    ) -> dict:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            logger.warning("order api %s %s failed: %s", method, path, e)
            raise OrderApiUnavailableError(self._base_url, str(e)) from e

        if response.status_code == 404:
            raise OrderApiNotFoundError(resource, resource_id or path)

        if response.status_code >= 500:
            logger.warning("order api %s %s answered %s", method, path, response.status_code)
            raise OrderApiUnavailableError(self._base_url, f"HTTP {response.status_code}")

        if response.status_code >= 400:
            raise OrderApiRejectedError(_error_detail(response), status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise OrderApiError(f"Order API returned a non-JSON body for {method} {path}") from e

        return data if isinstance(data, dict) else {}


def close_shared_clients() -> None:
    with _SHARED_LOCK:
        for api in _SHARED.values():
            api.close()
        _SHARED.clear()


def _payload_to_api(payload: dict) -> dict:
    body = dict(payload)
    body["payment_method"] = _METHOD_TO_API.get(payload.get("payment_method"), payload.get("payment_method"))
    body["payment_type"] = _TYPE_TO_API.get(payload.get("payment_type"), payload.get("payment_type"))
    return body


def _item_from_api(raw: dict) -> dict:
    return {
        "product_id": str(raw.get("product_id")),
        "sku": str(raw.get("sku") or ""),
        "product_name": str(raw.get("product_name") or ""),
        "quantity": parse_int_prefix(raw.get("quantity")),
        "unit_price": as_number(raw.get("unit_price")),
        "allocated_cost": as_number(raw.get("allocated_cost")),
        "purchase_cost": as_number(raw.get("purchase_cost")),
        "subtotal": as_number(raw.get("subtotal")),
        "image_url": raw.get("image_url") or None,
    }


def _installments_from_api(rows: list[dict]) -> list[dict]:
    out: list[dict] = []
    for raw in rows:
        due_date = str(raw.get("due_date") or "")[:10]
        try:
            date.fromisoformat(due_date)
        except ValueError:
            logger.warning("skipping stored installment without a due date: %r", raw)
            continue

        number = parse_int_prefix(raw.get("installment_number"))
        out.append(
            {
                "number": number if number >= 1 else len(out) + 1,
                "amount": as_number(raw.get("amount")),
                "due_date": due_date,
            }
        )
    return out

def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return f"HTTP {response.status_code}"


def _parse_timestamp(value: object) -> datetime:
    text = str(value or "").strip()
    if not text:
        return datetime.utcnow()
    # SQLite's CURRENT_TIMESTAMP uses a space separator.
    return datetime.fromisoformat(text.replace(" ", "T").replace("Z", "+00:00")).replace(tzinfo=None)
