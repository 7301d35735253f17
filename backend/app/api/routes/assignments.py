"""
Assignments API: create, list upcoming (active), list past, delete, class completion progress.

Dates are plain YYYY-MM-DD strings; "today" is taken in settings.notify_timezone, the same boundary
the reminder jobs use.
"""
import logging
import re
from datetime import date, timedelta
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from app.config import settings
from app.core.constants import PAST_ASSIGNMENTS_AFTER_DAYS, ROLE_STUDENT
from app.db.session import get_db
from app.models.assignment import Assignment
from app.models.assignment_status import AssignmentStatus
from app.models.user import User
from app.repos.notification_store import NotificationStore
from app.services.assignment_reminder_service import today_iso
from app.services.study_stats_service import assignment_progress

router = APIRouter()
logger = logging.getLogger(__name__)

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class CreateAssignmentBody(BaseModel):
    subject: str = Field(..., min_length=1, max_length=64)
    content: str = Field(..., min_length=1)
    due_date: str = Field(..., description="Zero-padded YYYY-MM-DD")
    created_by: str | None = Field(None, max_length=128)

    @field_validator("subject", "content")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("due_date")
    @classmethod
    def iso_date(cls, v: str) -> str:
        # zero padding matters: due dates are compared as strings
        v = v.strip()
        if not _ISO_DATE_RE.match(v):
            raise ValueError("due_date must be YYYY-MM-DD")
        try:
            date.fromisoformat(v)
        except ValueError as e:
            raise ValueError(f"due_date is not a calendar date: {v}") from e
        return v


def _to_dict(a: Assignment) -> dict[str, Any]:
    return {
        "id": a.id,
        "subject": a.subject,
        "content": a.content,
        "due_date": a.due_date,
        "created_by": a.created_by,
        "created_at": a.created_at.isoformat() if a.created_at else None,
    }


@router.post("/assignments")
def create_assignment(body: CreateAssignmentBody, db: Session = Depends(get_db)) -> dict[str, Any]:
    row = Assignment(subject=body.subject, content=body.content, due_date=body.due_date, created_by=body.created_by)
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Created assignment id=%s subject=%s due=%s", row.id, row.subject, row.due_date)
    return _to_dict(row)


@router.get("/assignments/active")
def list_active_assignments(db: Session = Depends(get_db)) -> dict[str, Any]:
    """Assignments due today or later, soonest first."""
    today = today_iso(settings.notify_timezone)
    rows = NotificationStore(db).get_active_assignments(today)
    return {"today": today, "assignments": [_to_dict(a) for a in rows]}


@router.get("/assignments/past")
def list_past_assignments(db: Session = Depends(get_db)) -> dict[str, Any]:
    """Assignments whose due date is more than a week ago, most recent first."""
    today = date.fromisoformat(today_iso(settings.notify_timezone))
    cutoff = (today - timedelta(days=PAST_ASSIGNMENTS_AFTER_DAYS)).isoformat()
    rows = (
        db.query(Assignment)
        .filter(Assignment.due_date < cutoff)
        .order_by(Assignment.due_date.desc(), Assignment.id.desc())
        .all()
    )
    return {"before": cutoff, "assignments": [_to_dict(a) for a in rows]}


@router.get("/assignments/progress")
def active_assignment_progress(db: Session = Depends(get_db)) -> dict[str, Any]:
    """
    Completion per active assignment: total is the students taking its subject, completed how many
    of them marked it done.
    """
    today = today_iso(settings.notify_timezone)
    assignments = NotificationStore(db).get_active_assignments(today)
    students = db.query(User).filter(User.role == ROLE_STUDENT).all()
    done = {
        (row.user_id, row.assignment_id)
        for row in db.query(AssignmentStatus).filter(AssignmentStatus.completed.is_(True)).all()
    }
    progress = assignment_progress(assignments, students, done)
    return {
        "today": today,
        "assignments": [{**_to_dict(a), **progress[a.id]} for a in assignments],
    }


@router.delete("/assignments/{assignment_id}")
def delete_assignment(assignment_id: int, db: Session = Depends(get_db)) -> dict[str, bool]:
    row = db.get(Assignment, assignment_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Assignment not found")
    db.query(AssignmentStatus).filter(AssignmentStatus.assignment_id == assignment_id).delete(
        synchronize_session=False
    )
    db.delete(row)
    db.commit()
    return {"ok": True}
