"""Shared order draft view schema (v1).

The back-office order screen renders this payload after every create / modify / submit call.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from packages.shared.schemas.order_v1 import (
    OrderPricingV1,
    OrderStatusV1,
    PaymentMethodV1,
    PaymentTypeV1,
)


class DraftStateV1(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    FAILED = "FAILED"


class DraftActionTypeV1(str, Enum):
    MODIFY = "MODIFY"
    SUBMIT = "SUBMIT"
    RETRY = "RETRY"


class DraftActionV1(BaseModel):
    type: DraftActionTypeV1
    label: str


class AdjustmentsV1(BaseModel):
    discount: float = 0.0
    shipping_cost: float = 0.0
    other_costs: float = 0.0


class DraftViewV1(BaseModel):
    version: str = "1"
    state: DraftStateV1

    title: str
    summary: str

    draft_id: str
    user_id: str
    order_id: str | None = None
    order_number: str
    submission_id: str | None = None

    status: OrderStatusV1 = OrderStatusV1.PENDING
    # False once the order is completed: only supplier, payment method and grouping may change.
    items_editable: bool = True

    supplier_id: str | None = None
    payment_method: PaymentMethodV1 = PaymentMethodV1.PIX
    payment_type: PaymentTypeV1 = PaymentTypeV1.FULL
    installment_schedule: str = ""
    is_grouped: bool = False

    adjustments: AdjustmentsV1 = Field(default_factory=AdjustmentsV1)
    pricing: OrderPricingV1

    actions: list[DraftActionV1] = Field(default_factory=list, max_length=4)
    warnings: list[str] = Field(default_factory=list, max_length=8)
