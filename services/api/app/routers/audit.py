from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from packages.shared.schemas.events import EventV1
from services.api.app.db.deps import get_db
from services.api.app.db.models import EventLog, OrderDraft, Submission
from services.api.app.models.audit import SubmissionDetail, SubmissionListItem
from sqlalchemy.orm import Session

router = APIRouter()


@router.get("/v1/submissions", response_model=list[SubmissionListItem])
def list_submissions(user_id: str, db: Session = Depends(get_db)) -> list[SubmissionListItem]:
    rows = (
        db.query(Submission, OrderDraft)
        .join(OrderDraft, OrderDraft.id == Submission.draft_id)
        .filter(Submission.user_id == user_id)
        .order_by(Submission.started_at.desc())
        .limit(200)
        .all()
    )

    out: list[SubmissionListItem] = []
    for submission, draft in rows:
        out.append(
            SubmissionListItem(
                submission_id=submission.id,
                draft_id=draft.id,
                status=submission.status,
                vendor=submission.vendor,
                order_number=draft.order_number,
                external_order_id=submission.external_order_id,
                grand_total=submission.grand_total,
                started_at=submission.started_at.isoformat(),
                finished_at=submission.finished_at.isoformat() if submission.finished_at else None,
            )
        )

    return out


@router.get("/v1/submissions/{submission_id}", response_model=SubmissionDetail)
def get_submission(submission_id: str, db: Session = Depends(get_db)) -> SubmissionDetail:
    row = (
        db.query(Submission, OrderDraft)
        .join(OrderDraft, OrderDraft.id == Submission.draft_id)
        .filter(Submission.id == submission_id)
        .first()
    )

    if row is None:
        raise HTTPException(status_code=404, detail="Submission not found")

    submission, draft = row
    return SubmissionDetail(
        submission_id=submission.id,
        draft_id=draft.id,
        user_id=submission.user_id,
        status=submission.status,
        vendor=submission.vendor,
        started_at=submission.started_at.isoformat(),
        finished_at=submission.finished_at.isoformat() if submission.finished_at else None,
        order_number=draft.order_number,
        external_order_id=submission.external_order_id,
        grand_total=submission.grand_total,
        payload_json=submission.payload_json,
        error_message=submission.error_message,
    )


@router.get("/v1/drafts/{draft_id}/events", response_model=list[EventV1])
def list_draft_events(draft_id: str, db: Session = Depends(get_db)) -> list[EventV1]:
    if db.get(OrderDraft, draft_id) is None:
        raise HTTPException(status_code=404, detail="Draft not found")

    submission_ids = [
        sid for (sid,) in db.query(Submission.id).filter(Submission.draft_id == draft_id).all()
    ]
    entity_ids = [draft_id, *submission_ids]

    events = (
        db.query(EventLog)
        .filter(EventLog.entity_id.in_(entity_ids))
        .order_by(EventLog.created_at.asc())
        .all()
    )

    return [
        EventV1(
            id=e.id,
            user_id=e.user_id,
            entity_type=e.entity_type,
            entity_id=e.entity_id,
            event_type=e.event_type,
            payload=e.event_payload_json,
            created_at=e.created_at.isoformat(),
        )
        for e in events
    ]
