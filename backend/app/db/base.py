"""Declarative base shared by all models and by alembic's target_metadata."""
from sqlalchemy.orm import declarative_base

Base = declarative_base()
