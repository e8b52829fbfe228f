"""Purchase order pricing.

Spreads the order-level adjustments (shipping + other costs - discount) evenly
over every physical piece in the order, derives per-item purchase costs and
subtotals, and splits the grand total into an installment schedule.

Everything here is a pure function of its arguments. Nothing raises on bad
numeric input: missing or non-numeric values count as 0 so the UI can call
these on every keystroke.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any

from packages.shared.schemas.order_v1 import PaymentMethodV1, PaymentTypeV1

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

# Largest integer a float holds exactly; quantities past it count as unreadable.
MAX_QUANTITY = 2**53


@dataclass(frozen=True, slots=True)
class LineItem:
    product_id: str
    sku: str
    quantity: int
    unit_price: float
    product_name: str = ""
    image_url: str | None = None


@dataclass(frozen=True, slots=True)
class OrderAdjustments:
    discount: float = 0.0
    shipping_cost: float = 0.0
    other_costs: float = 0.0


@dataclass(frozen=True, slots=True)
class PaymentConfig:
    method: PaymentMethodV1 = PaymentMethodV1.PIX
    type: PaymentTypeV1 = PaymentTypeV1.FULL
    installment_schedule: str = ""


@dataclass(frozen=True, slots=True)
class PricedLineItem:
    product_id: str
    sku: str
    product_name: str
    quantity: int
    unit_price: float
    allocated_cost: float
    allocated_total: float
    purchase_cost: float
    subtotal: float
    image_url: str | None = None


@dataclass(frozen=True, slots=True)
class Totals:
    items_total: float
    grand_total: float
    total_pieces: int
    total_skus: int
    cost_per_piece: float
    allocated_cost_per_item: tuple[float, ...] = ()
    items: tuple[PricedLineItem, ...] = ()


@dataclass(frozen=True, slots=True)
class Installment:
    number: int
    amount: float
    due_date: date


@dataclass(frozen=True, slots=True)
class OrderPricing:
    totals: Totals
    installments: list[Installment] = field(default_factory=list)


def parse_int_prefix(value: Any) -> int:
    """Parse the leading integer of ``value`` ("30d" -> 30); 0 when there is none."""

    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if value is None:
        return 0

    match = _LEADING_INT.match(str(value))
    if match is None:
        return 0
    try:
        return int(match.group(1))
    except ValueError:
        # Past the interpreter's int-string digit limit.
        return 0


def as_number(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def coerce_line_item(raw: LineItem | Mapping[str, Any]) -> LineItem:
    if isinstance(raw, LineItem):
        return LineItem(
            product_id=_as_id(raw.product_id),
            sku=str(raw.sku or ""),
            quantity=_as_quantity(raw.quantity),
            unit_price=as_number(raw.unit_price),
            product_name=raw.product_name or "",
            image_url=raw.image_url,
        )

    return LineItem(
        product_id=_as_id(raw.get("product_id")),
        sku=str(raw.get("sku") or ""),
        quantity=_as_quantity(raw.get("quantity")),
        unit_price=as_number(raw.get("unit_price")),
        product_name=str(raw.get("product_name") or ""),
        image_url=raw.get("image_url") or None,
    )


def coerce_adjustments(raw: OrderAdjustments | Mapping[str, Any] | None) -> OrderAdjustments:
    if raw is None:
        return OrderAdjustments()
    if isinstance(raw, OrderAdjustments):
        values = (raw.discount, raw.shipping_cost, raw.other_costs)
    else:
        values = (raw.get("discount"), raw.get("shipping_cost"), raw.get("other_costs"))

    discount, shipping_cost, other_costs = (as_number(v) for v in values)
    return OrderAdjustments(discount=discount, shipping_cost=shipping_cost, other_costs=other_costs)


def sort_by_sku(items: Iterable[Any]) -> list[Any]:
    """Stable ascending sort on ``sku``; works for LineItem objects and dicts."""

    def _sku(item: Any) -> str:
        sku = item.get("sku") if isinstance(item, Mapping) else getattr(item, "sku", "")
        return str(sku or "")

    return sorted(items, key=_sku)


def compute_totals(
    items: Sequence[LineItem | Mapping[str, Any]],
    adjustments: OrderAdjustments | Mapping[str, Any] | None,
) -> Totals:
    """Order totals with the net adjustment allocated per piece.

    Output rows keep the input order. Callers that persist the result sort the
    items by SKU first so preview and submission sum in the same order.
    """

    lines = [coerce_line_item(item) for item in items]
    adj = coerce_adjustments(adjustments)

    items_total = 0.0
    total_pieces = 0
    for line in lines:
        items_total += line.quantity * line.unit_price
        total_pieces += line.quantity

    additional_costs = adj.shipping_cost + adj.other_costs
    grand_total = items_total - adj.discount + additional_costs
    cost_per_piece = (additional_costs - adj.discount) / total_pieces if total_pieces > 0 else 0.0

    allocated_cost_per_item = tuple(cost_per_piece * line.quantity for line in lines)

    priced: list[PricedLineItem] = []
    for line, allocated_total in zip(lines, allocated_cost_per_item):
        # A zero-quantity row carries no pieces, so it gets no per-unit share.
        per_unit = allocated_total / line.quantity if line.quantity else 0.0
        priced.append(
            PricedLineItem(
                product_id=line.product_id,
                sku=line.sku,
                product_name=line.product_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                allocated_cost=per_unit,
                allocated_total=allocated_total,
                purchase_cost=line.unit_price + per_unit,
                subtotal=line.quantity * line.unit_price + allocated_total,
                image_url=line.image_url,
            )
        )

    return Totals(
        items_total=items_total,
        grand_total=grand_total,
        total_pieces=total_pieces,
        total_skus=len(lines),
        cost_per_piece=cost_per_piece,
        allocated_cost_per_item=allocated_cost_per_item,
        items=tuple(priced),
    )


def parse_installment_schedule(schedule: str | None) -> list[int]:
    if schedule is None or not str(schedule).strip():
        return []
    return [parse_int_prefix(token.strip()) for token in str(schedule).split(",")]


def generate_installments(
    totals: Totals,
    payment: PaymentConfig | None,
    order_date: date,
) -> list[Installment]:
    """Even split of the grand total over the schedule's day offsets.

    No remainder correction: the amounts may not add up to the grand total to
    the last cent.
    """

    if payment is None or not _pays_in_installments(payment.type):
        return []

    offsets = parse_installment_schedule(payment.installment_schedule)
    if not offsets:
        return []

    if isinstance(order_date, datetime):
        order_date = order_date.date()

    amount = totals.grand_total / len(offsets)
    return [
        Installment(number=index + 1, amount=amount, due_date=_due_date(order_date, days))
        for index, days in enumerate(offsets)
    ]


def schedule_from_installments(due_dates: Iterable[date | datetime], created_at: date | datetime) -> str:
    """Rebuild the "30,60,90" text of a stored order from its installment due dates."""

    start = _as_datetime(created_at)
    offsets = []
    for due in due_dates:
        days = (_as_datetime(due) - start).total_seconds() / 86400
        offsets.append(str(math.floor(days + 0.5)))
    return ",".join(offsets)


def price_order(
    items: Sequence[LineItem | Mapping[str, Any]],
    adjustments: OrderAdjustments | Mapping[str, Any] | None,
    payment: PaymentConfig | None,
    order_date: date,
) -> OrderPricing:
    totals = compute_totals(sort_by_sku(items), adjustments)
    return OrderPricing(totals=totals, installments=generate_installments(totals, payment, order_date))


def _pays_in_installments(payment_type: Any) -> bool:
    try:
        return PaymentTypeV1(payment_type) == PaymentTypeV1.INSTALLMENTS
    except ValueError:
        return False


def _as_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    return datetime(value.year, value.month, value.day)


def _as_id(value: Any) -> str:
    return "" if value is None else str(value)


def _as_quantity(value: Any) -> int:
    quantity = parse_int_prefix(value)
    return quantity if abs(quantity) <= MAX_QUANTITY else 0


def _due_date(order_date: date, days: int) -> date:
    try:
        return order_date + timedelta(days=days)
    except OverflowError:
        # Offsets past the calendar fall back to 0 days, like unreadable tokens.
        return order_date
