from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient


@pytest.fixture()
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    db_path = tmp_path / "backoffice_pricing.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_path}")
    monkeypatch.setenv("BACKOFFICE_DB_AUTO_CREATE", "true")
    monkeypatch.setenv("BACKOFFICE_ORDER_API", "mock")

    from services.api.app.main import app

    with TestClient(app) as c:
        yield c


def test_health(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_preview_sorts_by_sku_and_allocates_shipping(client: TestClient) -> None:
    resp = client.post(
        "/v1/pricing/preview",
        json={
            "items": [
                {"product_id": "p-b", "sku": "B", "quantity": 2, "unit_price": 10},
                {"product_id": "p-a", "sku": "A", "quantity": 1, "unit_price": 5},
            ],
            "adjustments": {"discount": 0, "shipping_cost": 10, "other_costs": 0},
        },
    )
    assert resp.status_code == 200

    data = resp.json()
    assert [it["sku"] for it in data["items"]] == ["A", "B"]
    assert data["items_total"] == 25
    assert data["grand_total"] == 35
    assert data["total_pieces"] == 3
    assert data["total_skus"] == 2
    assert data["cost_per_piece"] == pytest.approx(10 / 3)
    assert sum(it["subtotal"] for it in data["items"]) == pytest.approx(35)
    assert data["installments"] == []


def test_preview_installments_from_order_date(client: TestClient) -> None:
    resp = client.post(
        "/v1/pricing/preview",
        json={
            "items": [{"product_id": "p-1", "sku": "A", "quantity": 3, "unit_price": 30}],
            "payment": {"method": "card", "type": "installments", "installment_schedule": "30,60,90"},
            "order_date": "2026-03-10",
        },
    )
    assert resp.status_code == 200

    installments = resp.json()["installments"]
    assert [i["due_date"] for i in installments] == ["2026-04-09", "2026-05-09", "2026-06-08"]
    assert [i["number"] for i in installments] == [1, 2, 3]
    assert all(i["amount"] == 30 for i in installments)


def test_preview_coerces_unreadable_numbers_to_zero(client: TestClient) -> None:
    resp = client.post(
        "/v1/pricing/preview",
        json={
            "items": [
                {"product_id": "p-1", "sku": "A", "quantity": "abc", "unit_price": "12"},
                {"product_id": "p-2", "sku": "B", "quantity": "2", "unit_price": None},
            ],
            "adjustments": {"discount": "", "shipping_cost": "4", "other_costs": None},
        },
    )
    assert resp.status_code == 200

    data = resp.json()
    assert data["items_total"] == 0
    assert data["total_pieces"] == 2
    assert data["grand_total"] == 4
    assert data["items"][0]["subtotal"] == 0


def test_preview_discount_larger_than_costs_goes_negative(client: TestClient) -> None:
    resp = client.post(
        "/v1/pricing/preview",
        json={
            "items": [{"product_id": "p-1", "sku": "A", "quantity": 5, "unit_price": 20}],
            "adjustments": {"discount": 50},
        },
    )
    assert resp.status_code == 200

    data = resp.json()
    assert data["cost_per_piece"] == -10
    assert data["items"][0]["purchase_cost"] == 10
    assert data["grand_total"] == 50


def test_preview_rejects_unknown_payment_method(client: TestClient) -> None:
    resp = client.post(
        "/v1/pricing/preview",
        json={"items": [], "payment": {"method": "boleto"}},
    )
    assert resp.status_code == 422


def test_preview_survives_offsets_past_the_calendar(client: TestClient) -> None:
    resp = client.post(
        "/v1/pricing/preview",
        json={
            "items": [{"product_id": "p-1", "sku": "A", "quantity": 2, "unit_price": 50}],
            "payment": {"type": "installments", "installment_schedule": "30,99999999"},
            "order_date": "2024-01-01",
        },
    )
    assert resp.status_code == 200
    assert [i["due_date"] for i in resp.json()["installments"]] == ["2024-01-31", "2024-01-01"]


def test_preview_survives_oversized_quantities(client: TestClient) -> None:
    resp = client.post(
        "/v1/pricing/preview",
        json={
            "items": [
                {"product_id": "p-1", "sku": "A", "quantity": "9" * 5000, "unit_price": 1},
                {"product_id": "p-2", "sku": "B", "quantity": "9" * 400, "unit_price": 1},
            ],
        },
    )
    assert resp.status_code == 200
    assert resp.json()["total_pieces"] == 0


def test_preview_accepts_numeric_identifiers(client: TestClient) -> None:
    resp = client.post(
        "/v1/pricing/preview",
        json={"items": [{"product_id": 7, "sku": 1001, "quantity": 1, "unit_price": 3}]},
    )
    assert resp.status_code == 200

    item = resp.json()["items"][0]
    assert item["product_id"] == "7"
    assert item["sku"] == "1001"
