from __future__ import annotations

from pydantic import BaseModel, Field


class SubmissionListItem(BaseModel):
    submission_id: str
    draft_id: str
    status: str
    vendor: str
    order_number: str
    external_order_id: str | None = None
    grand_total: float | None = None
    started_at: str
    finished_at: str | None = None


class SubmissionDetail(BaseModel):
    submission_id: str
    draft_id: str
    user_id: str
    status: str
    vendor: str

    started_at: str
    finished_at: str | None = None

    order_number: str
    external_order_id: str | None = None
    grand_total: float | None = None
    payload_json: dict = Field(default_factory=dict)
    error_message: str | None = None

