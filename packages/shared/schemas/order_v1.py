"""Shared purchase order pricing schema (v1).

These models describe the pricing output the back-office UI renders and the
persistence API receives. They should remain stable and backwards compatible.
"""

from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import BaseModel, Field


class PaymentMethodV1(str, Enum):
    PIX = "pix"
    CARD = "card"
    CASH = "cash"


class PaymentTypeV1(str, Enum):
    FULL = "full"
    INSTALLMENTS = "installments"


class OrderStatusV1(str, Enum):
    PENDING = "pending"
    PRODUCTION = "production"
    IN_TRANSIT = "in_transit"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PricedItemV1(BaseModel):
    product_id: str
    sku: str
    product_name: str = ""
    quantity: int
    unit_price: float

    # Per-unit share of shipping + other costs - discount.
    allocated_cost: float
    purchase_cost: float
    subtotal: float
    image_url: str | None = None


class InstallmentV1(BaseModel):
    number: int = Field(..., ge=1)
    amount: float
    due_date: date


class OrderPricingV1(BaseModel):
    items_total: float
    grand_total: float
    total_pieces: int
    total_skus: int
    cost_per_piece: float

    items: list[PricedItemV1] = Field(default_factory=list)
    installments: list[InstallmentV1] = Field(default_factory=list)
