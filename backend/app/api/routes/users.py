"""
Users API: profile setup after sign-in, profile edits, study goals and per-assignment completion.

POST /users is called on every sign-in. The first call creates the profile with role, type and
subjects guessed from the email; later calls return the stored profile unchanged.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from app.core.constants import ROLE_STUDENT, ROLE_TEACHER, USER_TYPES
from app.db.session import get_db
from app.models.assignment import Assignment
from app.models.assignment_status import AssignmentStatus
from app.models.user import User
from app.services.profile_service import initial_profile, is_profile_complete, normalize_study_goals

router = APIRouter()
logger = logging.getLogger(__name__)


class SignInBody(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=128, description="Auth uid")
    email: str | None = Field(None, max_length=255)
    display_name: str | None = Field(None, max_length=128)


class ProfileBody(BaseModel):
    role: str | None = None
    type: str | None = None
    subjects: list[str] | None = None
    display_name: str | None = Field(None, max_length=128)

    @field_validator("role")
    @classmethod
    def known_role(cls, v: str | None) -> str | None:
        if v is not None and v not in (ROLE_STUDENT, ROLE_TEACHER):
            raise ValueError(f"role must be {ROLE_STUDENT} or {ROLE_TEACHER}")
        return v

    @field_validator("type")
    @classmethod
    def known_type(cls, v: str | None) -> str | None:
        if v is not None and v not in USER_TYPES:
            raise ValueError(f"type must be one of {USER_TYPES}")
        return v

    @field_validator("subjects")
    @classmethod
    def non_empty_subjects(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        subjects = list(dict.fromkeys(s.strip() for s in v if s and s.strip()))
        if not subjects:
            raise ValueError("subjects must not be empty")
        return subjects


class StudyGoalsBody(BaseModel):
    mode: str | None = None
    weekday: int | None = Field(None, ge=0)
    weekend: int | None = Field(None, ge=0)
    weekly: dict[str, int] | None = None  # "0" (Sunday) .. "6" (Saturday) -> minutes


class AssignmentStatusBody(BaseModel):
    completed: bool


def profile_dict(u: User) -> dict[str, Any]:
    return {
        "user_id": u.id,
        "email": u.email,
        "display_name": u.display_name,
        "role": u.role,
        "type": u.type,
        "subjects": list(u.subjects or []),
        "profile_complete": is_profile_complete(u),
        "created_at": u.created_at.isoformat() if u.created_at else None,
    }


def get_user_or_404(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.post("/users")
def sign_in(body: SignInBody, db: Session = Depends(get_db)) -> dict[str, Any]:
    """
    Create the profile on first sign-in. A user row that already exists (e.g. made by push
    registration) takes the role guessed from the email and keeps any fields already set.
    """
    user_id = body.user_id.strip()
    if not user_id:
        raise HTTPException(status_code=400, detail="user_id must not be blank")
    user = db.get(User, user_id)
    if user is not None and is_profile_complete(user):
        return profile_dict(user)
    initial = initial_profile(body.email, body.display_name)
    if user is None:
        user = User(id=user_id)
        db.add(user)
    user.role = initial["role"]
    user.email = user.email or initial["email"]
    user.display_name = user.display_name or initial["display_name"]
    user.type = user.type or initial["type"]
    user.subjects = user.subjects or initial["subjects"]
    db.commit()
    logger.info("Set up profile for user=%s role=%s type=%s", user_id, user.role, user.type)
    db.refresh(user)
    return profile_dict(user)


@router.get("/users/{user_id}")
def get_profile(user_id: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    return profile_dict(get_user_or_404(db, user_id))


@router.put("/users/{user_id}/profile")
def update_profile(user_id: str, body: ProfileBody, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Merge the given fields into the profile; omitted fields keep their value."""
    user = get_user_or_404(db, user_id)
    for field in ("role", "type", "subjects", "display_name"):
        value = getattr(body, field)
        if value is not None:
            setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return profile_dict(user)


@router.get("/users/{user_id}/study-goals")
def get_study_goals(user_id: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Stored goals with defaults filled in."""
    user = get_user_or_404(db, user_id)
    return normalize_study_goals(user.study_goals)


@router.put("/users/{user_id}/study-goals")
def update_study_goals(user_id: str, body: StudyGoalsBody, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Save goals. Values below the weekday/weekend minimum are raised to it; the saved goals are returned."""
    user = get_user_or_404(db, user_id)
    submitted = body.model_dump(exclude_none=True)
    merged = dict(user.study_goals or {})
    if "weekly" in submitted:
        submitted["weekly"] = {**(merged.get("weekly") or {}), **submitted["weekly"]}
    merged.update(submitted)
    try:
        goals = normalize_study_goals(merged)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    user.study_goals = goals
    db.commit()
    return goals


@router.put("/users/{user_id}/assignments/{assignment_id}/status")
def set_assignment_status(
    user_id: str, assignment_id: int, body: AssignmentStatusBody, db: Session = Depends(get_db)
) -> dict[str, Any]:
    get_user_or_404(db, user_id)
    if db.get(Assignment, assignment_id) is None:
        raise HTTPException(status_code=404, detail="Assignment not found")
    row = (
        db.query(AssignmentStatus)
        .filter(AssignmentStatus.user_id == user_id, AssignmentStatus.assignment_id == assignment_id)
        .first()
    )
    if row is None:
        row = AssignmentStatus(user_id=user_id, assignment_id=assignment_id)
        db.add(row)
    row.completed = body.completed
    db.commit()
    return {"assignment_id": assignment_id, "completed": row.completed}


@router.get("/users/{user_id}/assignment-status")
def list_assignment_status(user_id: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Completion flags of this user, keyed by assignment id (assignments never touched are absent)."""
    get_user_or_404(db, user_id)
    rows = db.query(AssignmentStatus).filter(AssignmentStatus.user_id == user_id).all()
    return {"statuses": {str(r.assignment_id): r.completed for r in rows}}
