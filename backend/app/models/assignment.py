"""Class assignment shared by all users. Active while due_date (YYYY-MM-DD) is today or later."""
from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from app.db.base import Base


class Assignment(Base):
    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    subject = Column(String(64), nullable=False)
    content = Column(Text, nullable=False)
    due_date = Column(String(10), nullable=False, index=True)  # zero-padded YYYY-MM-DD; compared as a string
    created_by = Column(String(128), nullable=True)  # users.id of the author
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
