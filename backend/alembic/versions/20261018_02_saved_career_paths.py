"""Per-user saved career paths."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20261018_02_saved_career_paths"
down_revision = "20261018_01_career_planning"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "saved_career_paths",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column(
            "target_id",
            sa.String(length=36),
            sa.ForeignKey("target_profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("graph_id", sa.String(length=36), nullable=False),
        sa.Column("role", sa.String(length=160), nullable=False),
        sa.Column("company", sa.String(length=160), nullable=False),
        sa.Column("seniority", sa.String(length=16), nullable=False),
        sa.Column("major", sa.String(length=160), nullable=True),
        sa.Column("nodes", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )
    op.create_index(
        "ix_saved_career_paths_user_id_created_at",
        "saved_career_paths",
        ["user_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_saved_career_paths_user_id_created_at", table_name="saved_career_paths")
    op.drop_table("saved_career_paths")
