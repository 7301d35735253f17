"""One study session logged by a student. duration is in minutes; user_name/user_type are copied at write time."""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from app.db.base import Base


class StudyRecord(Base):
    __tablename__ = "study_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    subject = Column(String(64), nullable=False)
    content = Column(Text, nullable=False)
    reference_book = Column(String(128), nullable=True)
    duration = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    user_name = Column(String(128), nullable=False)
    user_type = Column(String(16), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
