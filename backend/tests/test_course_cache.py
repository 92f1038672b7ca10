from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import List

import pytest

from skillpath.course_cache import NO_SCHOOL_MESSAGE, CourseRecommendationCache, match_courses
from skillpath.db.session import session_scope
from skillpath.errors import NotFound
from skillpath.generation import PROMPT_COURSE_MATCH, CourseMatchPayload
from skillpath.repositories import courses as courses_module
from skillpath.repositories.courses import CatalogCourse, course_directory, school_variations
from skillpath.repositories.skill_graphs import SkillNodeDraft, skill_graphs

T0 = datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc)


class _Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _seed_skill(name: str = "Distributed Systems") -> str:
    with session_scope() as session:
        ids = skill_graphs.ensure_skills(session, [SkillNodeDraft(key=name.lower(), name=name)])
    return ids[name.lower()]


def _seed_catalog(school: str = "UC Berkeley") -> None:
    with session_scope() as session:
        course_directory.add_courses(
            session,
            [
                CatalogCourse(school=school, course_code="CS 162", name="Operating Systems", credits=4),
                CatalogCourse(school=school, course_code="CS 186", name="Database Systems", department="CS"),
                CatalogCourse(school="Stanford University", course_code="CS 244B", name="Distributed Systems"),
            ],
        )


def _cache(fake_generator, clock: _Clock) -> CourseRecommendationCache:
    return CourseRecommendationCache(fake_generator, timeout=5, ttl=timedelta(hours=24), clock=clock)


def test_school_variations_cover_common_abbreviations() -> None:
    assert school_variations("University of California, Berkeley") == [
        "University of California, Berkeley",
        "UC Berkeley",
        "UCBerkeley",
        "UCB",
    ]
    assert "MIT" in school_variations("Massachusetts Institute of Technology")
    assert "Stanford University" in school_variations("stanford")


def test_catalog_lookup_falls_back_to_partial_then_all(database) -> None:
    _seed_catalog()
    with session_scope(commit=False) as session:
        exact = course_directory.list_for_school(session, "University of California, Berkeley")
        partial = course_directory.list_for_school(session, "Berkeley")
        everything = course_directory.list_for_school(session, "Nowhere College")

    assert [course.course_code for course in exact] == ["CS 162", "CS 186"]
    assert [course.course_code for course in partial] == ["CS 162", "CS 186"]
    assert len(everything) == 3


def test_every_catalog_lookup_is_capped(database, monkeypatch) -> None:
    _seed_catalog()
    monkeypatch.setattr(courses_module, "ALL_COURSES_LIMIT", 1)
    with session_scope(commit=False) as session:
        exact = course_directory.list_for_school(session, "UC Berkeley")
        partial = course_directory.list_for_school(session, "Berkeley")
        everything = course_directory.list_for_school(session, "Nowhere College")

    assert [course.course_code for course in exact] == ["CS 162"]
    assert [course.course_code for course in partial] == ["CS 162"]
    assert len(everything) == 1


def test_match_courses_validates_model_picks() -> None:
    catalog = [
        CatalogCourse(school="UCB", course_code="CS 61A", name="Structure", id="c1"),
        CatalogCourse(school="UCB", course_code="CS 61B", name="Data Structures", id="c2"),
    ]
    payload = CourseMatchPayload.model_validate(
        {
            "recommendations": [
                {"index": 0, "relevance_score": 99},
                {"index": 2, "relevance_score": 140, "reasoning": "x" * 900},
                {"index": 1, "relevance_score": -5, "reasoning": ""},
                {"index": 2, "relevance_score": 50},
                {"index": 7, "relevance_score": 80},
            ]
        }
    )

    picks = match_courses(payload, catalog, limit=10)

    assert [pick.course_id for pick in picks] == ["c2", "c1"]
    assert picks[0].relevance_score == 100
    assert len(picks[0].reasoning) == 500
    assert picks[1].relevance_score == 0
    assert picks[1].reasoning


def test_unknown_skill_is_not_found(database, fake_generator) -> None:
    with pytest.raises(NotFound):
        asyncio.run(_cache(fake_generator, _Clock(T0)).scan_courses("missing-skill", school="UC Berkeley"))


def test_missing_school_returns_message_without_generation(database, fake_generator) -> None:
    skill_id = _seed_skill()
    _seed_catalog()

    result = asyncio.run(_cache(fake_generator, _Clock(T0)).scan_courses(skill_id, user_id="no-school-user"))

    assert result.courses == []
    assert result.cached is False
    assert result.message == NO_SCHOOL_MESSAGE
    assert fake_generator.calls == []


def test_school_comes_from_student_profile(database, fake_generator) -> None:
    skill_id = _seed_skill()
    _seed_catalog()
    with session_scope() as session:
        course_directory.set_school(session, "student-1", "University of California, Berkeley")

    result = asyncio.run(_cache(fake_generator, _Clock(T0)).scan_courses(skill_id, user_id="student-1"))

    assert result.generated is True
    assert [course.course_code for course in result.courses] == ["CS 162"]
    call = fake_generator.calls_for(PROMPT_COURSE_MATCH)[0]
    assert call["skill_name"] == "Distributed Systems"
    assert [course.course_code for course in call["courses"]] == ["CS 162", "CS 186"]


def test_freshness_boundary(database, fake_generator) -> None:
    skill_id = _seed_skill()
    _seed_catalog()
    clock = _Clock(T0)
    cache = _cache(fake_generator, clock)

    first = asyncio.run(cache.scan_courses(skill_id, school="UC Berkeley"))
    assert first.cached is False

    clock.now = T0 + timedelta(hours=23, minutes=59)
    fresh = asyncio.run(cache.scan_courses(skill_id, school="UC Berkeley"))
    assert fresh.cached is True
    assert fresh.courses == first.courses
    assert len(fake_generator.calls_for(PROMPT_COURSE_MATCH)) == 1

    clock.now = T0 + timedelta(hours=24, minutes=1)
    stale = asyncio.run(cache.scan_courses(skill_id, school="UC Berkeley"))
    assert stale.cached is False
    assert len(fake_generator.calls_for(PROMPT_COURSE_MATCH)) == 2


def test_force_rescan_overwrites_cache(database, fake_generator) -> None:
    skill_id = _seed_skill()
    _seed_catalog()
    clock = _Clock(T0)
    cache = _cache(fake_generator, clock)
    asyncio.run(cache.scan_courses(skill_id, school="UC Berkeley"))

    fake_generator.course_matches = [{"index": 2, "relevance_score": 70, "reasoning": "Storage engines"}]
    clock.now = T0 + timedelta(minutes=5)
    rescanned = asyncio.run(cache.scan_courses(skill_id, school="UC Berkeley", force_rescan=True))

    assert rescanned.cached is False
    assert [course.course_code for course in rescanned.courses] == ["CS 186"]
    with session_scope(commit=False) as session:
        skill = skill_graphs.get_skill(session, skill_id)
    assert [course.course_code for course in skill.cached_courses] == ["CS 186"]
    assert skill.courses_last_scanned_at == clock.now


def test_empty_match_is_not_served_from_cache(database, fake_generator) -> None:
    skill_id = _seed_skill()
    _seed_catalog()
    fake_generator.course_matches = []
    cache = _cache(fake_generator, _Clock(T0))

    asyncio.run(cache.scan_courses(skill_id, school="UC Berkeley"))
    asyncio.run(cache.scan_courses(skill_id, school="UC Berkeley"))

    assert len(fake_generator.calls_for(PROMPT_COURSE_MATCH)) == 2


def test_empty_catalog_skips_generation(database, fake_generator) -> None:
    skill_id = _seed_skill()

    result = asyncio.run(_cache(fake_generator, _Clock(T0)).scan_courses(skill_id, school="UC Berkeley"))

    assert result.courses == []
    assert result.message is None
    assert fake_generator.calls == []


def test_guard_runs_before_generation_and_can_abort(database, fake_generator) -> None:
    skill_id = _seed_skill()
    _seed_catalog()
    calls: List[str] = []

    def guard() -> None:
        calls.append("guard")
        raise RuntimeError("over quota")

    with pytest.raises(RuntimeError):
        asyncio.run(_cache(fake_generator, _Clock(T0)).scan_courses(skill_id, school="UCB", before_generate=guard))

    assert calls == ["guard"]
    assert fake_generator.calls == []
