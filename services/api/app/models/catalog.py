from __future__ import annotations

from pydantic import BaseModel


class SupplierOut(BaseModel):
    id: str
    name: str


class ProductOut(BaseModel):
    id: str
    sku: str
    name: str
    cost_price: float
    image_url: str | None = None
