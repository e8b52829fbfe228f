from __future__ import annotations

from fastapi import APIRouter, HTTPException
from services.api.app.models.catalog import ProductOut, SupplierOut
from services.api.app.routers.errors import raise_order_api_http_error
from services.api.app.services.order_api_factory import get_order_api

router = APIRouter()


@router.get("/v1/suppliers", response_model=list[SupplierOut])
def list_suppliers() -> list[SupplierOut]:
    try:
        api = get_order_api()
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e

    try:
        suppliers = api.list_suppliers()
    except Exception as e:
        raise_order_api_http_error(e)

    return [SupplierOut(id=s.id, name=s.name) for s in suppliers]


@router.get("/v1/products", response_model=list[ProductOut])
def list_products(q: str = "") -> list[ProductOut]:
    try:
        api = get_order_api()
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e

    try:
        products = api.list_products(q)
    except Exception as e:
        raise_order_api_http_error(e)

    return [
        ProductOut(id=p.id, sku=p.sku, name=p.name, cost_price=p.cost_price, image_url=p.image_url)
        for p in products
    ]
