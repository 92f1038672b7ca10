"""Shared per-skill course recommendation cache."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from time import perf_counter
from typing import Callable, List, Optional

from .career_models import CourseRecommendation, CourseScanResult, SkillNode
from .db.session import session_scope
from .errors import NotFound
from .generation import PROMPT_COURSE_MATCH, CourseMatchPayload, Generator, run_generation
from .repositories.courses import CatalogCourse, CourseDirectoryRepository, course_directory
from .repositories.skill_graphs import SkillGraphRepository, skill_graphs
from .telemetry import COURSE_SCAN, emit_event

logger = logging.getLogger(__name__)

NO_SCHOOL_MESSAGE = "No school found in profile. Please add your school in Settings."
MAX_REASONING_LENGTH = 500
DEFAULT_REASONING = "Recommended based on relevance to this skill."


def match_courses(payload: CourseMatchPayload, catalog: List[CatalogCourse], limit: int) -> List[CourseRecommendation]:
    """Map the matcher's 1-based picks onto catalog rows.

    Out-of-range or repeated indices are dropped, scores are clamped to
    0-100 and reasoning is truncated.
    """
    picks: List[CourseRecommendation] = []
    used: set[int] = set()
    for entry in payload.recommendations:
        if entry.index < 1 or entry.index > len(catalog):
            logger.warning("Matcher returned index %s outside 1-%s; skipping", entry.index, len(catalog))
            continue
        if entry.index in used:
            continue
        course = catalog[entry.index - 1]
        if not course.course_code or not course.name:
            logger.warning("Catalog course at index %s is missing a code or name; skipping", entry.index)
            continue
        used.add(entry.index)
        reasoning = entry.reasoning.strip()[:MAX_REASONING_LENGTH] or DEFAULT_REASONING
        picks.append(
            CourseRecommendation(
                course_id=course.id or course.course_code,
                course_code=course.course_code,
                title=course.name,
                school=course.school,
                relevance_score=min(100.0, max(0.0, float(entry.relevance_score))),
                reasoning=reasoning,
                url=course.url,
                credits=course.credits,
                department=course.department,
            )
        )
    picks.sort(key=lambda pick: pick.relevance_score, reverse=True)
    return picks[:limit]


class CourseRecommendationCache:
    def __init__(
        self,
        generator: Generator,
        *,
        timeout: float = 90.0,
        ttl: timedelta = timedelta(hours=24),
        result_limit: int = 10,
        repository: SkillGraphRepository = skill_graphs,
        directory: CourseDirectoryRepository = course_directory,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._generator = generator
        self._timeout = timeout
        self._ttl = ttl
        self._result_limit = result_limit
        self._repository = repository
        self._directory = directory
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def is_fresh(self, skill: SkillNode, now: Optional[datetime] = None) -> bool:
        if not skill.cached_courses or skill.courses_last_scanned_at is None:
            return False
        now = now or self._clock()
        return now - skill.courses_last_scanned_at < self._ttl

    def resolve_school(self, user_id: Optional[str], school: Optional[str]) -> str | None:
        explicit = (school or "").strip()
        if explicit:
            return explicit
        if not user_id:
            return None
        with session_scope(commit=False) as session:
            return self._directory.school_for_user(session, user_id)

    async def scan_courses(
        self,
        skill_id: str,
        skill_name: Optional[str] = None,
        school: Optional[str] = None,
        *,
        user_id: Optional[str] = None,
        force_rescan: bool = False,
        before_generate: Optional[Callable[[], object]] = None,
    ) -> CourseScanResult:
        """Serve a fresh cached list or rank the school's catalog for the skill.

        ``before_generate`` runs right before the generative call and may raise
        to abort it (the planning service hooks the quota check in here).
        """
        with session_scope(commit=False) as session:
            skill = self._repository.get_skill(session, skill_id)
        if skill is None:
            raise NotFound("Skill not found.", skill_id=skill_id)

        if not force_rescan and self.is_fresh(skill):
            emit_event(COURSE_SCAN, skill_id=skill_id, cached=True, courses=len(skill.cached_courses))
            return CourseScanResult(courses=skill.cached_courses, cached=True)

        resolved_school = self.resolve_school(user_id, school)
        if not resolved_school:
            emit_event(COURSE_SCAN, skill_id=skill_id, cached=False, outcome="no_school")
            return CourseScanResult(courses=[], cached=False, message=NO_SCHOOL_MESSAGE)

        with session_scope(commit=False) as session:
            catalog = self._directory.list_for_school(session, resolved_school)
        if not catalog:
            logger.info("Course directory is empty; nothing to match for skill %s", skill_id)
            emit_event(COURSE_SCAN, skill_id=skill_id, cached=False, outcome="empty_catalog")
            return CourseScanResult(courses=[], cached=False)

        if before_generate is not None:
            before_generate()

        name = (skill_name or "").strip() or skill.name
        started = perf_counter()
        result = await run_generation(
            self._generator,
            PROMPT_COURSE_MATCH,
            {"skill_name": name, "courses": catalog, "limit": self._result_limit},
            timeout=self._timeout,
        )
        courses = match_courses(result.content, catalog, self._result_limit)

        with session_scope() as session:
            self._repository.replace_cached_courses(session, skill_id, courses, self._clock())

        duration_ms = round((perf_counter() - started) * 1000, 2)
        logger.info(
            "Matched %s courses for skill %s at %s (%s tokens)",
            len(courses),
            skill_id,
            resolved_school,
            result.tokens_consumed,
        )
        emit_event(
            COURSE_SCAN,
            skill_id=skill_id,
            cached=False,
            outcome="generated",
            school=resolved_school,
            catalog_size=len(catalog),
            courses=len(courses),
            tokens=result.tokens_consumed,
            force_rescan=force_rescan,
            duration_ms=duration_ms,
        )
        return CourseScanResult(
            courses=courses, cached=False, generated=True, tokens_consumed=result.tokens_consumed
        )


__all__ = ["CourseRecommendationCache", "NO_SCHOOL_MESSAGE", "match_courses"]
