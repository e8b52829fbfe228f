from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date, datetime
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException
from packages.shared.schemas.draft_v1 import (
    AdjustmentsV1,
    DraftActionTypeV1,
    DraftActionV1,
    DraftStateV1,
    DraftViewV1,
)
from packages.shared.schemas.events import EntityTypeV1, EventTypeV1
from packages.shared.schemas.order_v1 import (
    OrderStatusV1,
    PaymentMethodV1,
    PaymentTypeV1,
)
from services.api.app.db.deps import get_db
from services.api.app.db.models import EventLog, OrderDraft, Submission
from services.api.app.models.draft import (
    DraftCreateRequest,
    DraftModifyRequest,
    DraftSubmitRequest,
)
from services.api.app.routers.errors import raise_order_api_http_error
from services.api.app.services import order_editor
from services.api.app.services.order_api_base import OrderApi, OrderApiError, StoredOrder
from services.api.app.services.order_api_factory import get_order_api
from services.api.app.services.pricing import (
    OrderPricing,
    PaymentConfig,
    as_number,
    price_order,
    schedule_from_installments,
    sort_by_sku,
)
from sqlalchemy.orm import Session

logger = logging.getLogger("backoffice.drafts")

router = APIRouter()

_ADJUSTMENT_KEYS = ("discount", "shipping_cost", "other_costs")
_ITEM_KEYS = ("add_items", "remove_product_ids", "set_prices", "set_quantities", "bulk")
KNOWN_MODIFICATIONS = frozenset(
    {
        "supplier_id",
        "payment_method",
        "is_grouped",
        "payment_type",
        "installment_schedule",
        *_ADJUSTMENT_KEYS,
        *_ITEM_KEYS,
    }
)


@router.post("/v1/drafts", response_model=DraftViewV1)
def create_draft(payload: DraftCreateRequest, db: Session = Depends(get_db)) -> DraftViewV1:
    api = _order_api()

    if payload.order_id:
        try:
            order = api.get_order(payload.order_id)
        except Exception as e:
            raise_order_api_http_error(e)
        draft = _draft_from_order(payload.user_id, order)
    else:
        try:
            order_number = api.next_order_number(payload.user_id)
        except Exception as e:
            raise_order_api_http_error(e)
        draft = OrderDraft(
            id=uuid4().hex,
            user_id=payload.user_id,
            order_number=order_number,
            supplier_id=payload.supplier_id,
            status=OrderStatusV1.PENDING.value,
            payment_method=PaymentMethodV1.PIX.value,
            payment_type=PaymentTypeV1.FULL.value,
            installment_schedule="",
            is_grouped=False,
            discount=0.0,
            shipping_cost=0.0,
            other_costs=0.0,
            items_json=[],
        )

    db.add(draft)
    _log_event(
        db,
        user_id=payload.user_id,
        entity_type=EntityTypeV1.ORDER_DRAFT,
        entity_id=draft.id,
        event_type=EventTypeV1.DRAFT_CREATED,
        event_payload={"order_id": draft.source_order_id, "order_number": draft.order_number},
    )
    db.commit()

    logger.info("draft %s created for order %s", draft.id, draft.order_number)
    return _draft_view(draft)


@router.get("/v1/drafts/{draft_id}", response_model=DraftViewV1)
def get_draft(draft_id: str, db: Session = Depends(get_db)) -> DraftViewV1:
    draft = db.get(OrderDraft, draft_id)
    if draft is None:
        raise HTTPException(status_code=404, detail="Draft not found")
    return _draft_view(draft)


@router.post("/v1/draft/modify", response_model=DraftViewV1)
def modify_draft(payload: DraftModifyRequest, db: Session = Depends(get_db)) -> DraftViewV1:
    """Apply modifications in the order given, then re-price the whole draft.

    Supported keys: supplier_id, payment_method, is_grouped, payment_type,
    installment_schedule, discount, shipping_cost, other_costs, add_items
    ([{sku | product_id, quantity}]), remove_product_ids, set_prices
    ({product_id: price}), set_quantities ({product_id: qty}) and bulk
    ({product_ids, unit_price?, quantity?}).
    """

    draft = db.get(OrderDraft, payload.draft_id)
    if draft is None:
        raise HTTPException(status_code=404, detail="Draft not found")

    modifications = payload.modifications
    unknown = sorted(set(modifications) - KNOWN_MODIFICATIONS)
    if unknown:
        raise HTTPException(status_code=422, detail=f"Unknown modifications: {', '.join(unknown)}")

    if order_editor.items_locked(draft.status):
        locked = order_editor.locked_modification_keys(modifications)
        if locked:
            raise HTTPException(
                status_code=409,
                detail=(
                    f"Order {draft.order_number} is completed; only supplier, payment method and "
                    f"grouping can change (rejected: {', '.join(locked)})"
                ),
            )

    for key, value in modifications.items():
        if key in _ITEM_KEYS:
            draft.items_json = _apply_item_modification(draft.items_json or [], key, value)
        else:
            _apply_field_modification(draft, key, value)

    draft.updated_at = datetime.utcnow()
    _log_event(
        db,
        user_id=draft.user_id,
        entity_type=EntityTypeV1.ORDER_DRAFT,
        entity_id=draft.id,
        event_type=EventTypeV1.DRAFT_MODIFIED,
        event_payload={"modifications": modifications},
    )
    db.commit()

    return _draft_view(draft)


@router.post("/v1/draft/submit", response_model=DraftViewV1)
def submit_draft(payload: DraftSubmitRequest, db: Session = Depends(get_db)) -> DraftViewV1:
    draft = db.get(OrderDraft, payload.draft_id)
    if draft is None:
        raise HTTPException(status_code=404, detail="Draft not found")

    frozen = draft.frozen_payload_json
    items = (frozen or {}).get("items") if frozen is not None else draft.items_json
    errors = order_editor.validate_for_submit(draft.supplier_id, list(items or []))
    if errors:
        raise HTTPException(status_code=422, detail="; ".join(errors))

    api = _order_api()
    adjustments = _adjustments(draft)
    common = {
        "supplier_id": draft.supplier_id,
        "order_number": draft.order_number,
        "adjustments": adjustments,
        "payment_method": draft.payment_method,
        "payment_type": draft.payment_type,
        "is_grouped": draft.is_grouped,
    }
    if frozen is not None:
        body = order_editor.build_frozen_payload(frozen=frozen, **common)
    else:
        # Same SKU order as the live preview, so the submitted figures match what was shown.
        draft.items_json = sort_by_sku(draft.items_json or [])
        body = order_editor.build_submission_payload(pricing=_price(draft), **common)

    submission = Submission(
        id=uuid4().hex,
        draft_id=draft.id,
        user_id=payload.user_id,
        status="IN_PROGRESS",
        vendor=api.vendor,
        external_order_id=None,
        grand_total=body["total_amount"],
        payload_json=body,
        error_message=None,
    )
    db.add(submission)
    _log_event(
        db,
        user_id=payload.user_id,
        entity_type=EntityTypeV1.ORDER_DRAFT,
        entity_id=draft.id,
        event_type=EventTypeV1.DRAFT_SUBMITTED,
        event_payload={"submission_id": submission.id, "grand_total": body["total_amount"]},
    )
    db.commit()

    try:
        if draft.source_order_id:
            result = api.update_order(draft.source_order_id, body)
        else:
            result = api.create_order(body)
    except Exception as e:
        if isinstance(e, OrderApiError):
            logger.warning("submission %s for draft %s failed: %s", submission.id, draft.id, e)
        else:
            logger.exception("submission %s for draft %s failed", submission.id, draft.id)

        submission.status = "FAILED"
        submission.finished_at = datetime.utcnow()
        submission.error_message = str(e)
        _log_event(
            db,
            user_id=payload.user_id,
            entity_type=EntityTypeV1.SUBMISSION,
            entity_id=submission.id,
            event_type=EventTypeV1.SUBMISSION_FAILED,
            event_payload={"error": str(e)},
        )
        db.commit()

        return _draft_view(
            draft,
            state=DraftStateV1.FAILED,
            submission_id=submission.id,
            warnings=["Failed to save order", str(e)],
        )

    submission.status = "DONE"
    submission.finished_at = datetime.utcnow()
    submission.external_order_id = result.order_id
    # Later submissions of this draft update the order instead of creating a duplicate.
    draft.source_order_id = result.order_id
    if draft.order_created_at is None:
        draft.order_created_at = submission.started_at

    _log_event(
        db,
        user_id=payload.user_id,
        entity_type=EntityTypeV1.SUBMISSION,
        entity_id=submission.id,
        event_type=EventTypeV1.SUBMISSION_DONE,
        event_payload={"order_id": result.order_id, "order_number": result.order_number},
    )
    db.commit()

    logger.info("draft %s submitted as order %s (%s)", draft.id, result.order_id, api.vendor)
    return _draft_view(draft, state=DraftStateV1.SUBMITTED, submission_id=submission.id)


def _order_api() -> OrderApi:
    try:
        return get_order_api()
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


def _draft_from_order(user_id: str, order: StoredOrder) -> OrderDraft:
    stored_items = sort_by_sku(order.items)
    completed = order_editor.items_locked(order.status)

    schedule = ""
    payment_type = order.payment_type
    if order.installments:
        due_dates = []
        for inst in order.installments:
            try:
                due_dates.append(date.fromisoformat(str(inst.get("due_date"))[:10]))
            except ValueError:
                continue
        schedule = schedule_from_installments(due_dates, order.created_at)
        payment_type = PaymentTypeV1.INSTALLMENTS.value

    return OrderDraft(
        id=uuid4().hex,
        user_id=user_id,
        source_order_id=order.id,
        order_number=order.order_number,
        order_created_at=order.created_at,
        supplier_id=order.supplier_id,
        status=order.status,
        payment_method=order.payment_method,
        payment_type=payment_type,
        installment_schedule=schedule,
        is_grouped=order.is_grouped,
        discount=order.discount,
        shipping_cost=order.shipping_cost,
        other_costs=order.other_costs,
        items_json=[
            {
                "product_id": str(it.get("product_id")),
                "sku": str(it.get("sku") or ""),
                "product_name": str(it.get("product_name") or ""),
                "quantity": it.get("quantity"),
                "unit_price": it.get("unit_price"),
                "image_url": it.get("image_url"),
            }
            for it in stored_items
        ],
        frozen_payload_json=(
            {"items": stored_items, "installments": list(order.installments)} if completed else None
        ),
    )


def _apply_field_modification(draft: OrderDraft, key: str, value: object) -> None:
    if key == "supplier_id":
        draft.supplier_id = str(value) if value not in (None, "") else None
    elif key == "payment_method":
        draft.payment_method = _enum_value(PaymentMethodV1, key, value)
    elif key == "payment_type":
        draft.payment_type = _enum_value(PaymentTypeV1, key, value)
    elif key == "is_grouped":
        draft.is_grouped = bool(value)
    elif key == "installment_schedule":
        draft.installment_schedule = str(value or "")
    elif key in _ADJUSTMENT_KEYS:
        setattr(draft, key, as_number(value))


def _apply_item_modification(items: list[dict], key: str, value: object) -> list[dict]:
    if key == "remove_product_ids":
        for product_id in _as_list(key, value):
            items = order_editor.remove_product(items, str(product_id))
        return items

    if key == "set_prices":
        for product_id, price in _as_mapping(key, value).items():
            items = order_editor.set_unit_price(items, str(product_id), price)
        return items

    if key == "set_quantities":
        for product_id, qty in _as_mapping(key, value).items():
            items = order_editor.set_quantity(items, str(product_id), qty)
        return items

    if key == "bulk":
        bulk = _as_mapping(key, value)
        return order_editor.bulk_update(
            items,
            _as_list("bulk.product_ids", bulk.get("product_ids")),
            unit_price=bulk.get("unit_price"),
            quantity=bulk.get("quantity"),
        )

    # add_items
    api = _order_api()
    for raw in _as_list(key, value):
        if not isinstance(raw, dict):
            raise HTTPException(status_code=422, detail="add_items entries must be objects")
        product = _lookup_product(api, raw)
        items = order_editor.add_product(items, product, raw.get("quantity", 1))
    return items


def _lookup_product(api: OrderApi, raw: dict) -> dict:
    sku = str(raw.get("sku") or "").strip()
    product_id = str(raw.get("product_id") or "").strip()
    if not sku and not product_id:
        raise HTTPException(status_code=422, detail="add_items entries need a sku or product_id")

    try:
        products = [asdict(p) for p in api.list_products(sku)]
    except Exception as e:
        raise_order_api_http_error(e)

    if product_id:
        match = next((p for p in products if p["id"] == product_id), None)
    else:
        match = order_editor.find_product_by_sku(products, sku)

    if match is None:
        raise HTTPException(status_code=404, detail=f"Product not found: {sku or product_id}")
    return match


def _price(draft: OrderDraft) -> OrderPricing:
    return price_order(
        items=draft.items_json or [],
        adjustments=_adjustments(draft),
        payment=PaymentConfig(
            method=PaymentMethodV1(draft.payment_method),
            type=PaymentTypeV1(draft.payment_type),
            installment_schedule=draft.installment_schedule or "",
        ),
        order_date=_order_date(draft),
    )


def _order_date(draft: OrderDraft) -> date:
    if draft.order_created_at is not None:
        return draft.order_created_at.date()
    return date.today()


def _adjustments(draft: OrderDraft) -> dict[str, float]:
    return {key: as_number(getattr(draft, key)) for key in _ADJUSTMENT_KEYS}


def _draft_view(
    draft: OrderDraft,
    *,
    state: DraftStateV1 = DraftStateV1.DRAFT,
    submission_id: str | None = None,
    warnings: list[str] | None = None,
) -> DraftViewV1:
    adjustments = _adjustments(draft)
    all_warnings = list(warnings or [])

    if draft.frozen_payload_json is not None:
        pricing = order_editor.frozen_pricing_to_schema(draft.frozen_payload_json, adjustments)
    else:
        priced = _price(draft)
        pricing = order_editor.pricing_to_schema(priced)
        if draft.payment_type == PaymentTypeV1.INSTALLMENTS.value:
            all_warnings.extend(order_editor.schedule_warnings(draft.installment_schedule))
        all_warnings.extend(order_editor.pricing_warnings(priced))

    if state == DraftStateV1.FAILED:
        actions = [DraftActionV1(type=DraftActionTypeV1.RETRY, label="Retry")]
        summary = "Failed to save order"
    else:
        actions = [DraftActionV1(type=DraftActionTypeV1.MODIFY, label="Edit")]
        if state == DraftStateV1.DRAFT:
            actions.append(DraftActionV1(type=DraftActionTypeV1.SUBMIT, label="Save order"))
        summary = (
            f"{pricing.total_skus} SKUs, {pricing.total_pieces} pieces, "
            f"total {pricing.grand_total:.2f}"
        )

    return DraftViewV1(
        state=state,
        title=f"Order {draft.order_number}",
        summary=summary,
        draft_id=draft.id,
        user_id=draft.user_id,
        order_id=draft.source_order_id,
        order_number=draft.order_number,
        submission_id=submission_id,
        status=OrderStatusV1(draft.status),
        items_editable=not order_editor.items_locked(draft.status),
        supplier_id=draft.supplier_id,
        payment_method=PaymentMethodV1(draft.payment_method),
        payment_type=PaymentTypeV1(draft.payment_type),
        installment_schedule=draft.installment_schedule or "",
        is_grouped=draft.is_grouped,
        adjustments=AdjustmentsV1(**adjustments),
        pricing=pricing,
        actions=actions,
        warnings=all_warnings[:8],
    )


def _enum_value(enum_cls: type[PaymentMethodV1] | type[PaymentTypeV1], key: str, value: object) -> str:
    try:
        return enum_cls(value).value
    except ValueError as e:
        allowed = ", ".join(m.value for m in enum_cls)
        raise HTTPException(status_code=422, detail=f"{key} must be one of: {allowed}") from e


def _as_list(key: str, value: object) -> list:
    if not isinstance(value, list):
        raise HTTPException(status_code=422, detail=f"{key} must be a list")
    return value


def _as_mapping(key: str, value: object) -> dict:
    if not isinstance(value, dict):
        raise HTTPException(status_code=422, detail=f"{key} must be an object")
    return value


def _log_event(
    db: Session,
    *,
    user_id: str | None,
    entity_type: EntityTypeV1,
    entity_id: str,
    event_type: EventTypeV1,
    event_payload: dict,
) -> None:
    db.add(
        EventLog(
            id=uuid4().hex,
            user_id=user_id,
            entity_type=entity_type.value,
            entity_id=entity_id,
            event_type=event_type.value,
            event_payload_json=event_payload,
        )
    )
