"""Prompt builders for the skill graph and course matching agents."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

SKILL_GRAPH_INSTRUCTIONS = (
    "You are a career planning assistant. You map a target job onto the concrete, verifiable technical "
    "skills a student must acquire to be hired into it, and you order them from foundational to advanced."
)

COURSE_MATCH_INSTRUCTIONS = (
    "You are a course recommendation assistant. You only ever recommend courses from the numbered "
    "catalog you are given and you refer to them by their number."
)

FORBIDDEN_SKILL_EXAMPLES = (
    '"Problem Solving", "Critical Thinking", "Analytical Thinking", "Logical Reasoning", '
    '"Communication", "Teamwork", "Collaboration", "Leadership", "Software Principles", '
    '"Best Practices", "Time Management", "Project Management"'
)


def _catalog_attr(course: Any, key: str) -> Any:
    if isinstance(course, Mapping):
        return course.get(key)
    return getattr(course, key, None)


def build_skill_graph_prompt(role: str, company: str, seniority: str, major: Optional[str] = None) -> str:
    target = f"a {seniority}-level {role} position at {company}"
    if major:
        target += f" ({major} major)"
    return (
        f"Generate a comprehensive skill graph for {target}.\n\n"
        "Requirements:\n"
        "1. Include 15-30 concrete, specific and objectively verifiable skills: technologies, tools, "
        'languages, systems or techniques (for example "Python", "Docker", "PostgreSQL", '
        '"Distributed Systems", "Machine Learning").\n'
        f"2. Do NOT include generic or soft skills such as {FORBIDDEN_SKILL_EXAMPLES}.\n"
        "3. Each skill gets a one sentence description of what mastery looks like for this role.\n"
        "4. List prerequisites by the exact name of other skills in the same graph. Never reference a "
        "skill that is not in the graph.\n"
        "5. Order the nodes so prerequisites come before the skills that need them.\n"
        "6. Focus on what this company actually hires for at this level."
    )


def build_course_match_prompt(skill_name: str, courses: Sequence[Any], limit: int) -> str:
    lines = []
    for index, course in enumerate(courses, start=1):
        prerequisites = _catalog_attr(course, "prerequisites") or []
        credits = _catalog_attr(course, "credits")
        lines.append(
            f"{index}. {_catalog_attr(course, 'course_code')}: {_catalog_attr(course, 'name')}\n"
            f"   Description: {_catalog_attr(course, 'description') or 'No description'}\n"
            f"   Prerequisites: {', '.join(prerequisites) or 'None'}\n"
            f"   Credits: {credits if credits is not None else 'Not specified'}"
        )
    catalog = "\n".join(lines)
    return (
        f'Find courses that would help someone learn or improve the skill: "{skill_name}".\n\n'
        "Rules:\n"
        "1. Only use courses from the list below and never invent a course.\n"
        f'2. Only recommend courses that are directly relevant to learning "{skill_name}", including '
        "courses that teach fundamentals the skill depends on.\n"
        f"3. Refer to each course by its number (1-based, between 1 and {len(courses)}).\n"
        "4. Give each pick a relevance_score from 0 to 100 and a short reasoning under 200 characters.\n"
        f"5. Order by relevance_score descending and return at most {limit} recommendations. "
        "Return an empty list when nothing is relevant.\n\n"
        f"Available courses:\n{catalog}"
    )


__all__ = [
    "COURSE_MATCH_INSTRUCTIONS",
    "SKILL_GRAPH_INSTRUCTIONS",
    "build_course_match_prompt",
    "build_skill_graph_prompt",
]
