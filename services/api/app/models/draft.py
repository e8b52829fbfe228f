from __future__ import annotations

from pydantic import BaseModel, Field


class DraftCreateRequest(BaseModel):
    user_id: str = Field(..., min_length=1)

    # Load an existing order from the persistence API for editing.
    order_id: str | None = None
    supplier_id: str | None = None


class DraftModifyRequest(BaseModel):
    draft_id: str
    modifications: dict = Field(default_factory=dict)


class DraftSubmitRequest(BaseModel):
    draft_id: str
    user_id: str
