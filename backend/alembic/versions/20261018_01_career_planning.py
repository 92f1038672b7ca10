"""Target profiles, skill graphs, usage quotas and the course directory."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20261018_01_career_planning"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "target_profiles",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("lookup_key", sa.String(length=512), nullable=False),
        sa.Column("role", sa.String(length=160), nullable=False),
        sa.Column("company", sa.String(length=160), nullable=False),
        sa.Column("seniority", sa.String(length=16), nullable=False),
        sa.Column("major", sa.String(length=160), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_target_profiles_lookup_key", "target_profiles", ["lookup_key"], unique=True)

    op.create_table(
        "skills",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name_key", sa.String(length=160), nullable=False),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("cached_courses", sa.JSON(), nullable=False),
        sa.Column("courses_last_scanned_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_skills_name_key", "skills", ["name_key"], unique=True)

    op.create_table(
        "skill_graphs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "profile_id",
            sa.String(length=36),
            sa.ForeignKey("target_profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("model", sa.String(length=64), nullable=True),
        sa.Column("tokens_consumed", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("profile_id", name="uq_skill_graphs_profile_id"),
    )

    op.create_table(
        "skill_graph_nodes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("graph_id", sa.String(length=36), sa.ForeignKey("skill_graphs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("skill_id", sa.String(length=36), sa.ForeignKey("skills.id"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("prerequisites", sa.JSON(), nullable=False),
        sa.UniqueConstraint("graph_id", "skill_id", name="uq_graph_node_skill"),
    )
    op.create_index("ix_skill_graph_nodes_graph_id", "skill_graph_nodes", ["graph_id"])

    op.create_table(
        "plans",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("monthly_token_limit", sa.Integer(), nullable=False),
        sa.UniqueConstraint("name", name="uq_plans_name"),
    )

    op.create_table(
        "usage_records",
        sa.Column("user_id", sa.String(length=128), primary_key=True, nullable=False),
        sa.Column("plan_id", sa.String(length=36), sa.ForeignKey("plans.id"), nullable=False),
        sa.Column("tokens_used_this_period", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("period_start", sa.Date(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "student_profiles",
        sa.Column("user_id", sa.String(length=128), primary_key=True, nullable=False),
        sa.Column("school_name", sa.String(length=255), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "course_directory",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school", sa.String(length=255), nullable=False),
        sa.Column("course_code", sa.String(length=64), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("prerequisites", sa.JSON(), nullable=False),
        sa.Column("credits", sa.Float(), nullable=True),
        sa.Column("department", sa.String(length=64), nullable=True),
        sa.Column("url", sa.Text(), nullable=True),
    )
    op.create_index("ix_course_directory_school", "course_directory", ["school"])


def downgrade() -> None:
    op.drop_index("ix_course_directory_school", table_name="course_directory")
    op.drop_table("course_directory")
    op.drop_table("student_profiles")
    op.drop_table("usage_records")
    op.drop_table("plans")
    op.drop_index("ix_skill_graph_nodes_graph_id", table_name="skill_graph_nodes")
    op.drop_table("skill_graph_nodes")
    op.drop_table("skill_graphs")
    op.drop_index("ix_skills_name_key", table_name="skills")
    op.drop_table("skills")
    op.drop_index("ix_target_profiles_lookup_key", table_name="target_profiles")
    op.drop_table("target_profiles")
