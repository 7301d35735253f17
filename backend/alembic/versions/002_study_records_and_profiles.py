"""Profiles on users; study_records and assignment_statuses tables

Revision ID: 002
Revises: 001
Create Date: (run alembic upgrade head)

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("users", sa.Column("email", sa.String(255), nullable=True))
    op.add_column("users", sa.Column("type", sa.String(16), nullable=True))
    op.add_column("users", sa.Column("subjects", sa.JSON(), nullable=True))
    op.add_column("users", sa.Column("study_goals", sa.JSON(), nullable=True))
    op.add_column(
        "users",
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_table(
        "study_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(128), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("subject", sa.String(64), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("reference_book", sa.String(128), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("user_name", sa.String(128), nullable=False),
        sa.Column("user_type", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_study_records_user_id", "study_records", ["user_id"], unique=False)
    op.create_index("ix_study_records_created_at", "study_records", ["created_at"], unique=False)
    op.create_table(
        "assignment_statuses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(128), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "assignment_id", sa.Integer(), sa.ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("user_id", "assignment_id", name="uq_assignment_statuses_user_assignment"),
    )
    op.create_index("ix_assignment_statuses_user_id", "assignment_statuses", ["user_id"], unique=False)
    op.create_index("ix_assignment_statuses_assignment_id", "assignment_statuses", ["assignment_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_assignment_statuses_assignment_id", table_name="assignment_statuses")
    op.drop_index("ix_assignment_statuses_user_id", table_name="assignment_statuses")
    op.drop_table("assignment_statuses")
    op.drop_index("ix_study_records_created_at", table_name="study_records")
    op.drop_index("ix_study_records_user_id", table_name="study_records")
    op.drop_table("study_records")
    op.drop_column("users", "updated_at")
    op.drop_column("users", "study_goals")
    op.drop_column("users", "subjects")
    op.drop_column("users", "type")
    op.drop_column("users", "email")
