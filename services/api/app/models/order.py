from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field, field_validator

from packages.shared.schemas.order_v1 import PaymentMethodV1, PaymentTypeV1

# Numeric fields stay loose on purpose: the pricing engine coerces anything it cannot read to 0.
LooseNumber = int | float | str | None


class LineItemInput(BaseModel):
    # Opaque identifiers; the persistence API hands out numeric ones.
    product_id: str | int
    sku: str | int
    product_name: str = ""
    quantity: LooseNumber = 1
    unit_price: LooseNumber = 0
    image_url: str | None = None

    @field_validator("product_id", "sku", mode="after")
    @classmethod
    def _as_text(cls, value: str | int) -> str:
        return str(value)


class AdjustmentsInput(BaseModel):
    discount: LooseNumber = 0
    shipping_cost: LooseNumber = 0
    other_costs: LooseNumber = 0


class PaymentInput(BaseModel):
    method: PaymentMethodV1 = PaymentMethodV1.PIX
    type: PaymentTypeV1 = PaymentTypeV1.FULL
    installment_schedule: str = ""


class PricingPreviewRequest(BaseModel):
    items: list[LineItemInput] = Field(default_factory=list)
    adjustments: AdjustmentsInput = Field(default_factory=AdjustmentsInput)
    payment: PaymentInput = Field(default_factory=PaymentInput)

    # Installment due dates are offsets from this date; defaults to today.
    order_date: date | None = None
