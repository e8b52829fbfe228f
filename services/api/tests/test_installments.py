from __future__ import annotations

from datetime import date, datetime

import pytest
from packages.shared.schemas.order_v1 import PaymentMethodV1, PaymentTypeV1
from services.api.app.services.pricing import (
    PaymentConfig,
    compute_totals,
    generate_installments,
    parse_installment_schedule,
    price_order,
    schedule_from_installments,
)

ORDER_DATE = date(2026, 3, 10)


def _totals(grand_total_items: float = 90.0):
    return compute_totals(
        [{"product_id": "1", "sku": "A", "quantity": 1, "unit_price": grand_total_items}],
        {"shipping_cost": 10},
    )


def _installments(schedule: str) -> PaymentConfig:
    return PaymentConfig(
        method=PaymentMethodV1.CARD,
        type=PaymentTypeV1.INSTALLMENTS,
        installment_schedule=schedule,
    )


def test_three_installments_for_30_60_90() -> None:
    totals = _totals()
    installments = generate_installments(totals, _installments("30,60,90"), ORDER_DATE)

    assert [i.number for i in installments] == [1, 2, 3]
    assert [i.due_date for i in installments] == [
        date(2026, 4, 9),
        date(2026, 5, 9),
        date(2026, 6, 8),
    ]
    assert all(i.amount == totals.grand_total / 3 for i in installments)


def test_pay_in_full_has_no_installments() -> None:
    payment = PaymentConfig(type=PaymentTypeV1.FULL, installment_schedule="30,60")

    assert generate_installments(_totals(), payment, ORDER_DATE) == []
    assert generate_installments(_totals(), None, ORDER_DATE) == []


@pytest.mark.parametrize("schedule", ["", "   "])
def test_blank_schedule_has_no_installments(schedule: str) -> None:
    assert generate_installments(_totals(), _installments(schedule), ORDER_DATE) == []


def test_malformed_schedule_falls_back_to_zero_days() -> None:
    assert parse_installment_schedule("30,,90") == [30, 0, 90]

    installments = generate_installments(_totals(), _installments("30,,90"), ORDER_DATE)
    assert len(installments) == 3
    assert installments[1].due_date == ORDER_DATE


@pytest.mark.parametrize(
    ("schedule", "expected"),
    [
        (" 30 , 45 ", [30, 45]),
        ("30d,60d", [30, 60]),
        ("abc", [0]),
        ("-5,7", [-5, 7]),
        ("15.9", [15]),
    ],
)
def test_schedule_tokens_parse_leading_integer(schedule: str, expected: list[int]) -> None:
    assert parse_installment_schedule(schedule) == expected


def test_unknown_payment_type_is_treated_as_pay_in_full() -> None:
    payment = PaymentConfig(type="weekly", installment_schedule="7,14")  # type: ignore[arg-type]

    assert generate_installments(_totals(), payment, ORDER_DATE) == []


def test_amounts_are_an_even_split_without_remainder_correction() -> None:
    totals = compute_totals(
        [{"product_id": "1", "sku": "A", "quantity": 1, "unit_price": 100}],
        None,
    )
    installments = generate_installments(totals, _installments("30,60,90"), ORDER_DATE)

    assert {i.amount for i in installments} == {100 / 3}


def test_datetime_order_date_uses_its_calendar_day() -> None:
    installments = generate_installments(
        _totals(), _installments("1"), datetime(2026, 3, 10, 23, 59)
    )

    assert installments[0].due_date == date(2026, 3, 11)


def test_price_order_splits_the_grand_total() -> None:
    pricing = price_order(
        [{"product_id": "1", "sku": "A", "quantity": 2, "unit_price": 50}],
        {"discount": 10, "shipping_cost": 0, "other_costs": 0},
        _installments("30,60"),
        ORDER_DATE,
    )

    assert pricing.totals.grand_total == 90
    assert [i.amount for i in pricing.installments] == [45, 45]


def test_schedule_is_rebuilt_from_stored_due_dates() -> None:
    created_at = datetime(2026, 1, 15, 9, 30)
    due_dates = [date(2026, 2, 14), date(2026, 3, 16), date(2026, 4, 15)]

    assert schedule_from_installments(due_dates, created_at) == "30,60,90"


def test_rebuilt_schedule_of_no_installments_is_empty() -> None:
    assert schedule_from_installments([], date(2026, 1, 1)) == ""


@pytest.mark.parametrize("schedule", ["30,99999999", "30,-99999999", "30,9999999999999"])
def test_offsets_past_the_calendar_fall_back_to_zero_days(schedule: str) -> None:
    installments = generate_installments(_totals(), _installments(schedule), ORDER_DATE)

    assert [i.due_date for i in installments] == [date(2026, 4, 9), ORDER_DATE]
    assert all(i.amount == 50 for i in installments)
