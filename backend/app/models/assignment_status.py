"""Per-student completion flag for an assignment. At most one row per (user, assignment)."""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, false
from sqlalchemy.sql import func

from app.db.base import Base


class AssignmentStatus(Base):
    __tablename__ = "assignment_statuses"
    __table_args__ = (UniqueConstraint("user_id", "assignment_id", name="uq_assignment_statuses_user_assignment"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    assignment_id = Column(Integer, ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, index=True)
    completed = Column(Boolean, nullable=False, default=False, server_default=false())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
