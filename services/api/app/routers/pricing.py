from __future__ import annotations

from datetime import date

from fastapi import APIRouter
from packages.shared.schemas.order_v1 import OrderPricingV1
from services.api.app.models.order import PricingPreviewRequest
from services.api.app.services.order_editor import pricing_to_schema
from services.api.app.services.pricing import PaymentConfig, price_order

router = APIRouter()


@router.post("/v1/pricing/preview", response_model=OrderPricingV1)
def preview_pricing(payload: PricingPreviewRequest) -> OrderPricingV1:
    """Price an order snapshot without storing anything. Safe to call on every edit."""

    pricing = price_order(
        items=[item.model_dump() for item in payload.items],
        adjustments=payload.adjustments.model_dump(),
        payment=PaymentConfig(
            method=payload.payment.method,
            type=payload.payment.type,
            installment_schedule=payload.payment.installment_schedule,
        ),
        order_date=payload.order_date or date.today(),
    )
    return pricing_to_schema(pricing)
