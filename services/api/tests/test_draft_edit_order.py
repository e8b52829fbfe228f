from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from services.api.app.services import order_api_mock
from services.api.app.services.order_api_base import StoredOrder
from services.api.app.services.order_api_mock import MockOrderApi

STORED_ITEMS = [
    {
        "product_id": "p-2",
        "sku": "CAM-001-M",
        "product_name": "Camiseta Basica M",
        "quantity": 2,
        "unit_price": 18.5,
        "allocated_cost": 1.5,
        "purchase_cost": 20.0,
        "subtotal": 40.0,
        "image_url": None,
    },
    {
        "product_id": "p-3",
        "sku": "BOL-010",
        "product_name": "Bolsa Tote",
        "quantity": 1,
        "unit_price": 32.0,
        "allocated_cost": 2.0,
        "purchase_cost": 34.0,
        "subtotal": 34.0,
        "image_url": None,
    },
]
STORED_INSTALLMENTS = [
    {"number": 1, "amount": 37.0, "due_date": "2026-02-14"},
    {"number": 2, "amount": 37.0, "due_date": "2026-03-16"},
]


def _stored_order(order_id: str, status: str) -> StoredOrder:
    return StoredOrder(
        id=order_id,
        order_number=f"PO7{order_id}",
        supplier_id="s-1",
        status=status,
        created_at=datetime(2026, 1, 15, 9, 30),
        shipping_cost=6.0,
        payment_method="pix",
        payment_type="installments",
        items=[dict(it) for it in STORED_ITEMS],
        installments=[dict(it) for it in STORED_INSTALLMENTS],
    )


@pytest.fixture()
def api(monkeypatch: pytest.MonkeyPatch) -> MockOrderApi:
    fresh = MockOrderApi()
    fresh.put_order(_stored_order("900", "completed"))
    fresh.put_order(_stored_order("901", "production"))
    monkeypatch.setattr(order_api_mock, "mock_order_api", fresh)
    return fresh


@pytest.fixture()
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, api: MockOrderApi) -> TestClient:
    db_path = tmp_path / "backoffice_edit.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_path}")
    monkeypatch.setenv("BACKOFFICE_DB_AUTO_CREATE", "true")
    monkeypatch.setenv("BACKOFFICE_ORDER_API", "mock")

    from services.api.app.main import app

    with TestClient(app) as c:
        yield c


def _edit_draft(client: TestClient, order_id: str) -> dict:
    resp = client.post("/v1/drafts", json={"user_id": "7", "order_id": order_id})
    assert resp.status_code == 200
    return resp.json()


def test_edit_draft_rebuilds_schedule_from_due_dates(client: TestClient) -> None:
    view = _edit_draft(client, "901")

    assert view["order_id"] == "901"
    assert view["order_number"] == "PO7901"
    assert view["status"] == "production"
    assert view["items_editable"] is True
    assert view["payment_type"] == "installments"
    assert view["installment_schedule"] == "30,60"
    assert [it["sku"] for it in view["pricing"]["items"]] == ["BOL-010", "CAM-001-M"]

    # Live re-pricing: 6.00 shipping over 3 pieces.
    assert view["pricing"]["items"][1]["allocated_cost"] == 2
    assert view["pricing"]["grand_total"] == 75
    assert [i["due_date"] for i in view["pricing"]["installments"]] == ["2026-02-14", "2026-03-16"]


def test_edit_of_open_order_updates_it(client: TestClient, api: MockOrderApi) -> None:
    draft_id = _edit_draft(client, "901")["draft_id"]

    modified = client.post(
        "/v1/draft/modify",
        json={"draft_id": draft_id, "modifications": {"set_prices": {"p-3": 35}}},
    )
    assert modified.status_code == 200
    assert modified.json()["pricing"]["grand_total"] == 78

    done = client.post("/v1/draft/submit", json={"draft_id": draft_id, "user_id": "7"})
    assert done.status_code == 200
    assert done.json()["state"] == "SUBMITTED"

    stored = api.get_order("901")
    assert stored.order_number == "PO7901"
    assert stored.status == "production"
    assert stored.items[0]["unit_price"] == 35
    assert stored.items[1]["allocated_cost"] == 2
    assert [i["amount"] for i in stored.installments] == [39, 39]
    assert [i["due_date"] for i in stored.installments] == ["2026-02-14", "2026-03-16"]


def test_completed_order_shows_stored_figures(client: TestClient) -> None:
    view = _edit_draft(client, "900")

    assert view["status"] == "completed"
    assert view["items_editable"] is False
    assert view["pricing"]["items"][1]["allocated_cost"] == 1.5
    assert view["pricing"]["installments"][0]["amount"] == 37
    assert view["pricing"]["grand_total"] == 75


@pytest.mark.parametrize(
    "modifications",
    [
        {"set_quantities": {"p-3": 4}},
        {"shipping_cost": 20},
        {"supplier_id": "s-2", "installment_schedule": "15"},
    ],
)
def test_completed_order_rejects_pricing_changes(client: TestClient, modifications: dict) -> None:
    draft_id = _edit_draft(client, "900")["draft_id"]

    resp = client.post("/v1/draft/modify", json={"draft_id": draft_id, "modifications": modifications})
    assert resp.status_code == 409
    assert "PO7900 is completed" in resp.json()["detail"]


def test_completed_order_submits_stored_rows_verbatim(client: TestClient, api: MockOrderApi) -> None:
    draft_id = _edit_draft(client, "900")["draft_id"]

    modified = client.post(
        "/v1/draft/modify",
        json={
            "draft_id": draft_id,
            "modifications": {"supplier_id": "s-2", "payment_method": "cash", "is_grouped": True},
        },
    )
    assert modified.status_code == 200
    assert modified.json()["supplier_id"] == "s-2"

    done = client.post("/v1/draft/submit", json={"draft_id": draft_id, "user_id": "7"})
    assert done.status_code == 200

    stored = api.get_order("900")
    assert stored.status == "completed"
    assert stored.supplier_id == "s-2"
    assert stored.payment_method == "cash"
    assert stored.is_grouped is True
    assert stored.items == [STORED_ITEMS[1], STORED_ITEMS[0]]
    assert stored.installments == STORED_INSTALLMENTS
