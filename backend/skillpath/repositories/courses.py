"""Course directory and student school lookups."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..db.models import CourseDirectoryModel, StudentProfileModel

logger = logging.getLogger(__name__)

ALL_COURSES_LIMIT = 500

UC_CAMPUS_ABBREVIATIONS = {
    "santa": "UCSC",
    "berkeley": "UCB",
    "los": "UCLA",
    "san": "UCSD",
    "davis": "UCD",
    "irvine": "UCI",
    "riverside": "UCR",
    "merced": "UCM",
}

_UC_PATTERN = re.compile(r"university of california[,\s]+(\w+)")


@dataclass
class CatalogCourse:
    school: str
    course_code: str
    name: str
    description: Optional[str] = None
    prerequisites: List[str] = field(default_factory=list)
    credits: Optional[float] = None
    department: Optional[str] = None
    url: Optional[str] = None
    id: Optional[str] = None


def school_variations(school: str) -> List[str]:
    """Names the catalog may file ``school`` under, most specific first."""
    variations = [school]
    lowered = school.lower()

    match = _UC_PATTERN.search(lowered)
    if match:
        campus = match.group(1)
        variations.append(f"UC {campus.capitalize()}")
        variations.append(f"UC{campus.capitalize()}")
        abbreviation = UC_CAMPUS_ABBREVIATIONS.get(campus)
        if abbreviation:
            variations.append(abbreviation)

    if "massachusetts institute" in lowered:
        variations.append("MIT")
    if "stanford" in lowered:
        variations.extend(["Stanford", "Stanford University"])

    return list(dict.fromkeys(variations))


class CourseDirectoryRepository:
    def school_for_user(self, session: Session, user_id: str) -> str | None:
        profile = session.get(StudentProfileModel, user_id)
        if profile is None or not profile.school_name or not profile.school_name.strip():
            return None
        return profile.school_name.strip()

    def set_school(self, session: Session, user_id: str, school_name: str | None) -> None:
        profile = session.get(StudentProfileModel, user_id)
        if profile is None:
            session.add(StudentProfileModel(user_id=user_id, school_name=school_name))
        else:
            profile.school_name = school_name
        session.flush()

    def add_courses(self, session: Session, courses: Iterable[CatalogCourse]) -> List[str]:
        """Insert catalog rows and return their generated ids."""
        courses = list(courses)
        models = [
            CourseDirectoryModel(
                school=course.school,
                course_code=course.course_code,
                name=course.name,
                description=course.description,
                prerequisites=list(course.prerequisites),
                credits=course.credits,
                department=course.department,
                url=course.url,
            )
            for course in courses
        ]
        session.add_all(models)
        session.flush()
        return [model.id for model in models]

    def list_for_school(self, session: Session, school: str) -> List[CatalogCourse]:
        """Resolve a school's catalog.

        Tries each name variation exactly, then a partial match on the last
        word longer than three characters, then falls back to every course.
        Each step returns at most ``ALL_COURSES_LIMIT`` rows.
        """
        school = school.strip()
        for variant in school_variations(school):
            stmt = (
                select(CourseDirectoryModel)
                .where(CourseDirectoryModel.school == variant)
                .order_by(CourseDirectoryModel.course_code)
                .limit(ALL_COURSES_LIMIT)
            )
            rows = list(session.execute(stmt).scalars())
            if rows:
                logger.debug("Found %s courses filed under %r", len(rows), variant)
                return [self._to_domain(row) for row in rows]

        words = [word for word in re.split(r"[\s,]+", school) if len(word) > 3]
        needle = (words[-1] if words else school).lower()
        stmt = (
            select(CourseDirectoryModel)
            .where(func.lower(CourseDirectoryModel.school).contains(needle, autoescape=True))
            .order_by(CourseDirectoryModel.course_code)
            .limit(ALL_COURSES_LIMIT)
        )
        rows = list(session.execute(stmt).scalars())
        if rows:
            logger.info("Matched %s courses for %r by partial school name %r", len(rows), school, needle)
            return [self._to_domain(row) for row in rows]

        logger.info("No catalog entries for %r; falling back to all schools", school)
        stmt = select(CourseDirectoryModel).order_by(CourseDirectoryModel.course_code).limit(ALL_COURSES_LIMIT)
        return [self._to_domain(row) for row in session.execute(stmt).scalars()]

    def _to_domain(self, model: CourseDirectoryModel) -> CatalogCourse:
        return CatalogCourse(
            id=model.id,
            school=model.school,
            course_code=model.course_code,
            name=model.name,
            description=model.description,
            prerequisites=list(model.prerequisites or []),
            credits=model.credits,
            department=model.department,
            url=model.url,
        )


course_directory = CourseDirectoryRepository()

__all__ = [
    "ALL_COURSES_LIMIT",
    "CatalogCourse",
    "CourseDirectoryRepository",
    "course_directory",
    "school_variations",
]
