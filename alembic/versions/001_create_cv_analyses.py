"""create cv_analyses table

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "cv_analyses",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False, index=True),
        sa.Column("cv_hash", sa.String(64), nullable=False),
        sa.Column("cv_content", sa.Text(), nullable=False),
        sa.Column("filename", sa.String(255), nullable=False, server_default=""),
        sa.Column("analysis", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    # One entry per user + CV content; concurrent duplicate inserts resolve to the first row
    op.create_index("ix_cv_analyses_user_hash", "cv_analyses", ["user_id", "cv_hash"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_cv_analyses_user_hash", table_name="cv_analyses")
    op.drop_table("cv_analyses")
