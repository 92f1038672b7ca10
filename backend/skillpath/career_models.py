"""Domain models for target profiles, skill graphs and course recommendations."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal, Optional, get_args

from pydantic import BaseModel, Field

Seniority = Literal["entry", "mid", "senior", "staff", "principal"]
SENIORITY_LEVELS: tuple[str, ...] = get_args(Seniority)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything stored here is UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class TargetProfile(BaseModel):
    id: str
    role: str
    company: str
    seniority: Seniority
    major: Optional[str] = None
    created_at: Optional[datetime] = None


class CourseRecommendation(BaseModel):
    course_id: str
    course_code: str
    title: str
    school: str
    relevance_score: float = Field(ge=0, le=100)
    reasoning: str = ""
    url: Optional[str] = None
    credits: Optional[float] = None
    department: Optional[str] = None


class SkillNode(BaseModel):
    id: str
    name: str
    description: str = ""
    prerequisites: List[str] = Field(default_factory=list)
    cached_courses: List[CourseRecommendation] = Field(default_factory=list)
    courses_last_scanned_at: Optional[datetime] = None


class SkillGraph(BaseModel):
    id: str
    profile_id: str
    generated_at: datetime
    nodes: List[SkillNode] = Field(default_factory=list)


class SkillGraphLookup(BaseModel):
    """Result of a get-or-generate call.

    ``tokens_consumed`` is non-zero only for the caller that led a generation,
    so waiters that shared the result are never charged for it.
    """

    graph: SkillGraph
    generated: bool = False
    tokens_consumed: int = 0


class CourseScanResult(BaseModel):
    courses: List[CourseRecommendation] = Field(default_factory=list)
    cached: bool = False
    message: Optional[str] = None
    generated: bool = False
    tokens_consumed: int = 0


class CareerPathResult(BaseModel):
    target_id: str
    graph_id: str
    role: str
    company: str
    seniority: Seniority
    major: Optional[str] = None
    generated_at: datetime
    nodes: List[SkillNode] = Field(default_factory=list)
    cached: bool = True


class SavedCareerPath(BaseModel):
    id: str
    target_id: str
    graph_id: str
    role: str
    company: str
    seniority: Seniority
    major: Optional[str] = None
    nodes: List[SkillNode] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


__all__ = [
    "CareerPathResult",
    "CourseRecommendation",
    "CourseScanResult",
    "SENIORITY_LEVELS",
    "SavedCareerPath",
    "Seniority",
    "SkillGraph",
    "SkillGraphLookup",
    "SkillNode",
    "TargetProfile",
    "ensure_utc",
]
