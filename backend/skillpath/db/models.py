"""ORM models backing the SkillPath record store."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from .base import Base, TimestampMixin

JSONType = JSON


def _uuid() -> str:
    return str(uuid.uuid4())


class TargetProfileModel(TimestampMixin, Base):
    __tablename__ = "target_profiles"
    __table_args__ = (Index("ix_target_profiles_lookup_key", "lookup_key", unique=True),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    lookup_key: Mapped[str] = mapped_column(String(512), nullable=False)
    role: Mapped[str] = mapped_column(String(160), nullable=False)
    company: Mapped[str] = mapped_column(String(160), nullable=False)
    seniority: Mapped[str] = mapped_column(String(16), nullable=False)
    major: Mapped[str | None] = mapped_column(String(160), nullable=True)

    skill_graph: Mapped[Optional["SkillGraphModel"]] = relationship(
        back_populates="profile", cascade="all, delete-orphan", uselist=False
    )


class SkillModel(TimestampMixin, Base):
    """A skill shared by every graph that names it; owns the course cache."""

    __tablename__ = "skills"
    __table_args__ = (Index("ix_skills_name_key", "name_key", unique=True),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name_key: Mapped[str] = mapped_column(String(160), nullable=False)
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    cached_courses: Mapped[list[dict]] = mapped_column(JSONType, default=list, nullable=False)
    courses_last_scanned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class SkillGraphModel(Base):
    __tablename__ = "skill_graphs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    profile_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("target_profiles.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    generated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    model: Mapped[str | None] = mapped_column(String(64), nullable=True)
    tokens_consumed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    profile: Mapped[TargetProfileModel] = relationship(back_populates="skill_graph")
    nodes: Mapped[list["SkillGraphNodeModel"]] = relationship(
        back_populates="graph",
        cascade="all, delete-orphan",
        order_by="SkillGraphNodeModel.position",
    )


class SkillGraphNodeModel(Base):
    __tablename__ = "skill_graph_nodes"
    __table_args__ = (UniqueConstraint("graph_id", "skill_id", name="uq_graph_node_skill"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    graph_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("skill_graphs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    skill_id: Mapped[str] = mapped_column(String(36), ForeignKey("skills.id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    prerequisites: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)

    graph: Mapped[SkillGraphModel] = relationship(back_populates="nodes")
    skill: Mapped[SkillModel] = relationship(lazy="joined")


class PlanModel(Base):
    __tablename__ = "plans"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    monthly_token_limit: Mapped[int] = mapped_column(Integer, nullable=False)


class UsageRecordModel(TimestampMixin, Base):
    __tablename__ = "usage_records"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    plan_id: Mapped[str] = mapped_column(String(36), ForeignKey("plans.id"), nullable=False)
    tokens_used_this_period: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)

    plan: Mapped[PlanModel] = relationship(lazy="joined")


class SavedCareerPathModel(TimestampMixin, Base):
    """A career path a user bookmarked, with the nodes as they were when saved."""

    __tablename__ = "saved_career_paths"
    __table_args__ = (Index("ix_saved_career_paths_user_id_created_at", "user_id", "created_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    target_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("target_profiles.id", ondelete="CASCADE"), nullable=False
    )
    # Not a foreign key: the snapshot outlives a regenerated graph.
    graph_id: Mapped[str] = mapped_column(String(36), nullable=False)
    role: Mapped[str] = mapped_column(String(160), nullable=False)
    company: Mapped[str] = mapped_column(String(160), nullable=False)
    seniority: Mapped[str] = mapped_column(String(16), nullable=False)
    major: Mapped[str | None] = mapped_column(String(160), nullable=True)
    nodes: Mapped[list[dict]] = mapped_column(JSONType, default=list, nullable=False)


class StudentProfileModel(TimestampMixin, Base):
    __tablename__ = "student_profiles"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    school_name: Mapped[str | None] = mapped_column(String(255), nullable=True)


class CourseDirectoryModel(Base):
    __tablename__ = "course_directory"
    __table_args__ = (Index("ix_course_directory_school", "school"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    school: Mapped[str] = mapped_column(String(255), nullable=False)
    course_code: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    prerequisites: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    credits: Mapped[float | None] = mapped_column(Float, nullable=True)
    department: Mapped[str | None] = mapped_column(String(64), nullable=True)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)


__all__ = [
    "CourseDirectoryModel",
    "PlanModel",
    "SavedCareerPathModel",
    "SkillGraphModel",
    "SkillGraphNodeModel",
    "SkillModel",
    "StudentProfileModel",
    "TargetProfileModel",
    "UsageRecordModel",
]
