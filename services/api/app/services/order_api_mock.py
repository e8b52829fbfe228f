from __future__ import annotations

from datetime import datetime

from services.api.app.services.order_api_base import (
    OrderApiNotFoundError,
    OrderApiRejectedError,
    ProductRecord,
    StoredOrder,
    SubmitResult,
    SupplierRecord,
)


def next_sequence_number(prefix: str, existing: list[str]) -> str:
    """``{prefix}{seq:04d}``, continuing from the last number that carries ``prefix``."""

    sequence = 1
    matching = [n for n in existing if n.startswith(prefix)]
    if matching:
        tail = matching[-1][-4:]
        if tail.isdigit():
            sequence = int(tail) + 1
    return f"{prefix}{sequence:04d}"


class MockOrderApi:
    vendor = "ORDER_API_MOCK"

    def __init__(self) -> None:
        self._suppliers = [
            SupplierRecord(id="s-1", name="Tecidos Aurora"),
            SupplierRecord(id="s-2", name="Embalagens Sul"),
        ]
        self._products = [
            ProductRecord(id="p-1", sku="CAM-001-P", name="Camiseta Basica P", cost_price=18.5),
            ProductRecord(id="p-2", sku="CAM-001-M", name="Camiseta Basica M", cost_price=18.5),
            ProductRecord(id="p-3", sku="BOL-010", name="Bolsa Tote", cost_price=32.0),
            ProductRecord(id="p-4", sku="EMB-100", name="Caixa Envio 20x20", cost_price=2.75),
        ]
        self._orders: dict[str, StoredOrder] = {}
        self._order_numbers: list[str] = []

    def list_suppliers(self) -> list[SupplierRecord]:
        return list(self._suppliers)

    def list_products(self, query: str = "") -> list[ProductRecord]:
        needle = query.strip().lower()
        if not needle:
            return list(self._products)
        return [p for p in self._products if needle in p.sku.lower() or needle in p.name.lower()]

    def get_order(self, order_id: str) -> StoredOrder:
        order = self._orders.get(order_id)
        if order is None:
            raise OrderApiNotFoundError("Order", order_id)
        return order

    def next_order_number(self, user_id: str) -> str:
        return next_sequence_number(f"PO{user_id}", self._order_numbers)

    def create_order(self, payload: dict) -> SubmitResult:
        self._check(payload)
        order_id = str(len(self._orders) + 1)
        while order_id in self._orders:
            order_id = str(int(order_id) + 1)
        order_number = str(payload.get("order_number") or "")
        self._orders[order_id] = self._stored(order_id, payload, status="pending", created_at=datetime.utcnow())
        self._order_numbers.append(order_number)
        return SubmitResult(order_id=order_id, order_number=order_number)

    def update_order(self, order_id: str, payload: dict) -> SubmitResult:
        current = self.get_order(order_id)
        self._check(payload)
        self._orders[order_id] = self._stored(
            order_id,
            {**payload, "order_number": current.order_number},
            status=current.status,
            created_at=current.created_at,
        )
        return SubmitResult(order_id=order_id, order_number=current.order_number)

    def put_order(self, order: StoredOrder) -> None:
        """Seed an order directly, e.g. one that already reached a terminal status."""

        self._orders[order.id] = order
        self._order_numbers.append(order.order_number)

    def _check(self, payload: dict) -> None:
        if not payload.get("supplier_id"):
            raise OrderApiRejectedError("Supplier is required")
        if not payload.get("items"):
            raise OrderApiRejectedError("At least one item is required")

    def _stored(self, order_id: str, payload: dict, status: str, created_at: datetime) -> StoredOrder:
        return StoredOrder(
            id=order_id,
            order_number=str(payload.get("order_number") or ""),
            supplier_id=payload.get("supplier_id"),
            status=status,
            created_at=created_at,
            discount=float(payload.get("discount") or 0),
            shipping_cost=float(payload.get("shipping_cost") or 0),
            other_costs=float(payload.get("other_costs") or 0),
            payment_method=str(payload.get("payment_method") or "pix"),
            payment_type=str(payload.get("payment_type") or "full"),
            is_grouped=bool(payload.get("is_grouped")),
            items=[dict(it) for it in payload.get("items") or []],
            installments=[dict(it) for it in payload.get("installment_schedule") or []],
        )


mock_order_api = MockOrderApi()
