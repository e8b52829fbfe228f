from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol


class OrderApiError(Exception):
    """Base class for order persistence API errors."""


class OrderApiNotFoundError(OrderApiError):
    def __init__(self, resource: str, resource_id: str) -> None:
        super().__init__(f"{resource} not found: {resource_id}")
        self.resource = resource
        self.resource_id = resource_id


class OrderApiRejectedError(OrderApiError):
    """The API answered 4xx to a write; ``detail`` is its error message."""

    def __init__(self, detail: str, status_code: int = 400) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class OrderApiUnavailableError(OrderApiError):
    def __init__(self, base_url: str, reason: str) -> None:
        super().__init__(f"Order API at {base_url} is unavailable: {reason}")
        self.base_url = base_url
        self.reason = reason


@dataclass(frozen=True, slots=True)
class SupplierRecord:
    id: str
    name: str


@dataclass(frozen=True, slots=True)
class ProductRecord:
    id: str
    sku: str
    name: str
    cost_price: float
    image_url: str | None = None


@dataclass(frozen=True, slots=True)
class StoredOrder:
    id: str
    order_number: str
    supplier_id: str | None
    status: str
    created_at: datetime

    discount: float = 0.0
    shipping_cost: float = 0.0
    other_costs: float = 0.0
    payment_method: str = "pix"
    payment_type: str = "full"
    is_grouped: bool = False

    # Rows as the API returns them (product_id, sku, quantity, unit_price, allocated_cost, ...).
    items: list[dict] = field(default_factory=list)
    installments: list[dict] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class SubmitResult:
    order_id: str
    order_number: str


class OrderApi(Protocol):
    vendor: str

    def list_suppliers(self) -> list[SupplierRecord]: ...

    def list_products(self, query: str = "") -> list[ProductRecord]: ...

    def get_order(self, order_id: str) -> StoredOrder: ...

    def next_order_number(self, user_id: str) -> str: ...

    def create_order(self, payload: dict) -> SubmitResult: ...

    def update_order(self, order_id: str, payload: dict) -> SubmitResult: ...
