"""App user (student or teacher). id is the auth uid; device tokens, study records and assignment status hang off it."""
from sqlalchemy import JSON, Column, DateTime, String
from sqlalchemy.sql import func

from app.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(128), primary_key=True)
    email = Column(String(255), nullable=True)
    display_name = Column(String(128), nullable=True)
    role = Column(String(16), nullable=False, default="student", server_default="student")  # student | teacher
    type = Column(String(16), nullable=True)  # bunken | riken
    subjects = Column(JSON, nullable=True)  # list of subject names the student takes
    # {"mode": "basic"|"advanced", "weekday": min, "weekend": min, "weekly": {"0".."6": min}}; 0 is Sunday
    study_goals = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
