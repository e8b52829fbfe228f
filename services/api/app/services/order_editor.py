from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from packages.shared.schemas.order_v1 import (
    InstallmentV1,
    OrderPricingV1,
    OrderStatusV1,
    PaymentTypeV1,
    PricedItemV1,
)
from services.api.app.services.pricing import (
    OrderPricing,
    Totals,
    as_number,
    compute_totals,
    parse_int_prefix,
    sort_by_sku,
)

# Keys a completed order still accepts; everything else touches pricing.
UNLOCKED_KEYS = frozenset({"supplier_id", "payment_method", "is_grouped"})


def parse_quantity_input(value: Any) -> int:
    qty = parse_int_prefix(value)
    return qty if qty >= 1 else 1


def parse_price_input(value: Any) -> float:
    return as_number(value)


def items_locked(status: str | OrderStatusV1 | None) -> bool:
    return status == OrderStatusV1.COMPLETED


def locked_modification_keys(modifications: Mapping[str, Any]) -> list[str]:
    return sorted(k for k in modifications if k not in UNLOCKED_KEYS)


def find_product_by_sku(products: Iterable[Mapping[str, Any]], query: str) -> dict | None:
    """Exact SKU match first, then the first SKU containing ``query``. Case-insensitive."""

    needle = (query or "").strip().lower()
    if not needle:
        return None

    candidates = list(products)
    for product in candidates:
        if str(product.get("sku") or "").lower() == needle:
            return dict(product)
    for product in candidates:
        if needle in str(product.get("sku") or "").lower():
            return dict(product)
    return None


def add_product(items: list[dict], product: Mapping[str, Any], quantity: Any = 1) -> list[dict]:
    qty = parse_quantity_input(quantity)
    product_id = str(product.get("id") if product.get("id") is not None else product.get("product_id"))

    out = [dict(it) for it in items]
    for item in out:
        if item["product_id"] == product_id:
            item["quantity"] = parse_int_prefix(item.get("quantity")) + qty
            return sort_by_sku(out)

    out.append(
        {
            "product_id": product_id,
            "sku": str(product.get("sku") or ""),
            "product_name": str(product.get("name") or product.get("product_name") or ""),
            "quantity": qty,
            "unit_price": as_number(product.get("cost_price")),
            "image_url": product.get("image_url") or None,
        }
    )
    return sort_by_sku(out)


def remove_product(items: list[dict], product_id: str) -> list[dict]:
    return [dict(it) for it in items if it["product_id"] != str(product_id)]


def set_unit_price(items: list[dict], product_id: str, price: Any) -> list[dict]:
    return bulk_update(items, [product_id], unit_price=price)


def set_quantity(items: list[dict], product_id: str, quantity: Any) -> list[dict]:
    return bulk_update(items, [product_id], quantity=quantity)


def bulk_update(
    items: list[dict],
    product_ids: Iterable[Any],
    *,
    unit_price: Any = None,
    quantity: Any = None,
) -> list[dict]:
    selected = {str(pid) for pid in product_ids}
    out = [dict(it) for it in items]
    for item in out:
        if item["product_id"] not in selected:
            continue
        if unit_price is not None:
            item["unit_price"] = parse_price_input(unit_price)
        if quantity is not None:
            item["quantity"] = parse_quantity_input(quantity)
    return sort_by_sku(out)


def validate_for_submit(supplier_id: str | None, items: list[dict]) -> list[str]:
    errors: list[str] = []
    if not supplier_id:
        errors.append("Select a supplier")
    if not items:
        errors.append("Add at least one product")
    return errors


def schedule_warnings(schedule: str | None) -> list[str]:
    if schedule is None or not schedule.strip():
        return []

    warnings: list[str] = []
    for index, token in enumerate(schedule.split(","), start=1):
        if not token.strip().lstrip("+-")[:1].isdigit():
            warnings.append(f"Installment {index}: {token.strip()!r} is not a day offset; using 0 days")
    return warnings


def pricing_warnings(pricing: OrderPricing) -> list[str]:
    warnings: list[str] = []
    if pricing.totals.grand_total < 0:
        warnings.append("Discount exceeds the order value; grand total is negative")
    if pricing.totals.cost_per_piece < 0:
        warnings.append("Discount exceeds shipping and other costs; purchase costs are below unit price")
    return warnings


def build_submission_payload(
    *,
    supplier_id: str,
    order_number: str,
    adjustments: Mapping[str, float],
    payment_method: str,
    payment_type: str,
    is_grouped: bool,
    pricing: OrderPricing,
) -> dict:
    installments = [
        {"number": inst.number, "amount": inst.amount, "due_date": inst.due_date.isoformat()}
        for inst in pricing.installments
    ]
    paid_in_installments = payment_type == PaymentTypeV1.INSTALLMENTS.value

    return {
        "supplier_id": supplier_id,
        "order_number": order_number,
        "discount": adjustments.get("discount", 0.0),
        "shipping_cost": adjustments.get("shipping_cost", 0.0),
        "other_costs": adjustments.get("other_costs", 0.0),
        "payment_method": payment_method,
        "payment_type": payment_type,
        "installments": len(installments) if paid_in_installments else 1,
        "installment_schedule": installments if paid_in_installments else [],
        "is_grouped": bool(is_grouped),
        "total_amount": pricing.totals.grand_total,
        "items": [
            {
                "product_id": it.product_id,
                "sku": it.sku,
                "product_name": it.product_name,
                "quantity": it.quantity,
                "unit_price": it.unit_price,
                "allocated_cost": it.allocated_cost,
                "purchase_cost": it.purchase_cost,
                "subtotal": it.subtotal,
                "image_url": it.image_url,
            }
            for it in pricing.totals.items
        ],
    }


def build_frozen_payload(
    *,
    supplier_id: str,
    order_number: str,
    adjustments: Mapping[str, float],
    payment_method: str,
    payment_type: str,
    is_grouped: bool,
    frozen: Mapping[str, Any],
) -> dict:
    """Submission body for a completed order: stored items and installments go back untouched."""

    items = [dict(it) for it in frozen.get("items") or []]
    installments = [dict(it) for it in frozen.get("installments") or []]
    totals = compute_totals(items, adjustments)

    return {
        "supplier_id": supplier_id,
        "order_number": order_number,
        "discount": adjustments.get("discount", 0.0),
        "shipping_cost": adjustments.get("shipping_cost", 0.0),
        "other_costs": adjustments.get("other_costs", 0.0),
        "payment_method": payment_method,
        "payment_type": payment_type,
        "installments": len(installments) or 1,
        "installment_schedule": installments,
        "is_grouped": bool(is_grouped),
        "total_amount": totals.grand_total,
        "items": items,
    }


def pricing_to_schema(pricing: OrderPricing) -> OrderPricingV1:
    return OrderPricingV1(
        **_totals_fields(pricing.totals),
        items=[
            PricedItemV1(
                product_id=it.product_id,
                sku=it.sku,
                product_name=it.product_name,
                quantity=it.quantity,
                unit_price=it.unit_price,
                allocated_cost=it.allocated_cost,
                purchase_cost=it.purchase_cost,
                subtotal=it.subtotal,
                image_url=it.image_url,
            )
            for it in pricing.totals.items
        ],
        installments=[
            InstallmentV1(number=inst.number, amount=inst.amount, due_date=inst.due_date)
            for inst in pricing.installments
        ],
    )


def frozen_pricing_to_schema(frozen: Mapping[str, Any], adjustments: Mapping[str, float]) -> OrderPricingV1:
    items = [dict(it) for it in frozen.get("items") or []]
    totals = compute_totals(items, adjustments)
    return OrderPricingV1(
        **_totals_fields(totals),
        items=[PricedItemV1.model_validate(it) for it in items],
        installments=[InstallmentV1.model_validate(it) for it in frozen.get("installments") or []],
    )


def _totals_fields(totals: Totals) -> dict:
    return {
        "items_total": totals.items_total,
        "grand_total": totals.grand_total,
        "total_pieces": totals.total_pieces,
        "total_skus": totals.total_skus,
        "cost_per_piece": totals.cost_per_piece,
    }
