"""Shared event schema (v1).

The service keeps an append-only event log per draft. Clients read it to render the
history of an order draft.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EntityTypeV1(str, Enum):
    ORDER_DRAFT = "OrderDraft"
    SUBMISSION = "Submission"


class EventTypeV1(str, Enum):
    DRAFT_CREATED = "DRAFT_CREATED"
    DRAFT_MODIFIED = "DRAFT_MODIFIED"
    DRAFT_SUBMITTED = "DRAFT_SUBMITTED"
    SUBMISSION_DONE = "SUBMISSION_DONE"
    SUBMISSION_FAILED = "SUBMISSION_FAILED"


class EventV1(BaseModel):
    id: str
    user_id: str | None = None

    entity_type: EntityTypeV1
    entity_id: str

    event_type: EventTypeV1
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: str
