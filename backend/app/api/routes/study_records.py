"""
Study records API: students log study time; the week chart, the timeline and the teacher dashboard
read it back.

Days are cut in settings.notify_timezone. The SQL filters only narrow the rows; the local-day
bucketing happens in study_stats_service.
"""
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from app.api.routes.users import get_user_or_404
from app.config import settings
from app.core.constants import TYPE_RIKEN, UNKNOWN_RECORD_USER_NAME, WEEKLY_STATS_DAYS
from app.db.session import get_db
from app.models.study_record import StudyRecord
from app.services.assignment_reminder_service import today_iso
from app.services.study_stats_service import (
    daily_active_count,
    start_of_local_day,
    week_start,
    weekly_breakdown,
    weekly_summary,
)

router = APIRouter()
logger = logging.getLogger(__name__)


class StudyRecordBody(BaseModel):
    subject: str = Field(..., min_length=1, max_length=64)
    content: str = Field(..., min_length=1)
    duration: int = Field(..., gt=0, description="Minutes studied")
    comment: str | None = None
    reference_book: str | None = Field(None, max_length=128)

    @field_validator("subject", "content")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("reference_book", "comment")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        return (v or "").strip() or None


def _to_dict(r: StudyRecord) -> dict[str, Any]:
    return {
        "id": r.id,
        "user_id": r.user_id,
        "subject": r.subject,
        "content": r.content,
        "reference_book": r.reference_book,
        "duration": r.duration,
        "comment": r.comment,
        "user_name": r.user_name,
        "user_type": r.user_type,
        "created_at": r.created_at.isoformat() if r.created_at else None,
    }


def _today() -> date:
    return date.fromisoformat(today_iso(settings.notify_timezone))


@router.post("/users/{user_id}/study-records")
def create_study_record(user_id: str, body: StudyRecordBody, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Log one study session. Name and type are copied from the profile so dashboards need no join."""
    user = get_user_or_404(db, user_id)
    row = StudyRecord(
        user_id=user.id,
        subject=body.subject,
        content=body.content,
        reference_book=body.reference_book,
        duration=body.duration,
        comment=body.comment,
        user_name=user.display_name or UNKNOWN_RECORD_USER_NAME,
        user_type=user.type or TYPE_RIKEN,
        created_at=datetime.now(timezone.utc),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Study record id=%s user=%s subject=%s %s min", row.id, user.id, row.subject, row.duration)
    return _to_dict(row)


@router.get("/users/{user_id}/study-records")
def list_study_records(
    user_id: str, limit: int = Query(50, ge=1, le=500), db: Session = Depends(get_db)
) -> dict[str, Any]:
    """Timeline: newest first."""
    get_user_or_404(db, user_id)
    rows = (
        db.query(StudyRecord)
        .filter(StudyRecord.user_id == user_id)
        .order_by(StudyRecord.created_at.desc(), StudyRecord.id.desc())
        .limit(limit)
        .all()
    )
    return {"records": [_to_dict(r) for r in rows]}


@router.get("/users/{user_id}/study-records/weekly")
def weekly_study_breakdown(
    user_id: str,
    start: date | None = Query(None, description="Any day of the week; defaults to this week"),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Minutes per day (Monday first) per reference book or subject."""
    get_user_or_404(db, user_id)
    monday = week_start(start or _today())
    tz = settings.notify_timezone
    rows = (
        db.query(StudyRecord)
        .filter(
            StudyRecord.user_id == user_id,
            StudyRecord.created_at >= start_of_local_day(monday, tz),
            StudyRecord.created_at < start_of_local_day(monday + timedelta(days=7), tz),
        )
        .all()
    )
    days = weekly_breakdown(rows, monday, tz)
    return {"week_start": monday.isoformat(), "total_minutes": sum(d["total_minutes"] for d in days), "days": days}


@router.get("/stats/daily-active")
def daily_active(db: Session = Depends(get_db)) -> dict[str, Any]:
    """Students who logged anything today."""
    today = _today()
    tz = settings.notify_timezone
    rows = db.query(StudyRecord).filter(StudyRecord.created_at >= start_of_local_day(today, tz)).all()
    return {"date": today.isoformat(), "count": daily_active_count(rows, today, tz)}


@router.get("/stats/weekly")
def weekly_stats(db: Session = Depends(get_db)) -> dict[str, Any]:
    """Teacher dashboard totals over the last 7 days."""
    since = datetime.now(timezone.utc) - timedelta(days=WEEKLY_STATS_DAYS)
    rows = db.query(StudyRecord).filter(StudyRecord.created_at >= since).all()
    return {"since": since.isoformat(), **weekly_summary(rows)}
