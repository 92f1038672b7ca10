"""Get-or-generate access to the skill graph of a target profile."""

from __future__ import annotations

import logging
from time import perf_counter
from typing import List, Optional

from .cache.single_flight import SingleFlight
from .career_models import SkillGraph, SkillGraphLookup, TargetProfile
from .db.session import session_scope
from .errors import GenerationFailure
from .generation import PROMPT_SKILL_GRAPH, Generator, SkillGraphPayload, run_generation
from .profile_resolver import normalize_component
from .repositories.skill_graphs import SkillGraphRepository, SkillNodeDraft, skill_graphs
from .telemetry import SKILL_GRAPH_CACHE, SKILL_GRAPH_GENERATION, emit_event

logger = logging.getLogger(__name__)

FORBIDDEN_SKILLS = (
    "problem solving",
    "critical thinking",
    "analytical thinking",
    "logical reasoning",
    "communication",
    "teamwork",
    "collaboration",
    "leadership",
    "software principles",
    "best practices",
    "time management",
    "project management",
    "soft skills",
    "interpersonal skills",
    "emotional intelligence",
)

MAX_SKILL_NAME_LENGTH = 160


def is_forbidden_skill(name: str) -> bool:
    lowered = normalize_component(name)
    return any(forbidden in lowered for forbidden in FORBIDDEN_SKILLS)


def build_skill_drafts(payload: SkillGraphPayload) -> List[SkillNodeDraft]:
    """Turn model output into persistable nodes.

    Drops blank and generic soft skills, keeps the first occurrence of each
    skill name, and discards prerequisites that point outside the graph or
    at the node itself.
    """
    drafts: List[SkillNodeDraft] = []
    raw_prerequisites: List[List[str]] = []
    seen: set[str] = set()
    for node in payload.nodes:
        name = " ".join(node.name.split())[:MAX_SKILL_NAME_LENGTH]
        key = normalize_component(name)
        if not key:
            continue
        if is_forbidden_skill(name):
            logger.info("Filtering out generic skill %r", name)
            continue
        if key in seen:
            continue
        seen.add(key)
        drafts.append(SkillNodeDraft(key=key, name=name, description=node.description.strip()))
        raw_prerequisites.append(node.prerequisites)

    for draft, prerequisites in zip(drafts, raw_prerequisites):
        keys: List[str] = []
        for prerequisite in prerequisites:
            key = normalize_component(prerequisite)
            if key in seen and key != draft.key and key not in keys:
                keys.append(key)
        draft.prerequisite_keys = keys
    return drafts


class GenerationCache:
    """Serves stored skill graphs and generates missing ones once per profile."""

    def __init__(
        self,
        generator: Generator,
        *,
        timeout: float = 90.0,
        repository: SkillGraphRepository = skill_graphs,
        flights: Optional[SingleFlight[SkillGraphLookup]] = None,
    ) -> None:
        self._generator = generator
        self._timeout = timeout
        self._repository = repository
        self._flights: SingleFlight[SkillGraphLookup] = flights or SingleFlight()

    def get_graph(self, graph_id: str) -> SkillGraph | None:
        with session_scope(commit=False) as session:
            return self._repository.get(session, graph_id)

    def get_for_profile(self, profile_id: str) -> SkillGraph | None:
        with session_scope(commit=False) as session:
            return self._repository.get_for_profile(session, profile_id)

    async def get_or_generate(self, profile: TargetProfile, *, regenerate: bool = False) -> SkillGraphLookup:
        if not regenerate:
            existing = self.get_for_profile(profile.id)
            if existing is not None:
                emit_event(SKILL_GRAPH_CACHE, profile_id=profile.id, graph_id=existing.id, hit=True)
                return SkillGraphLookup(graph=existing)

        emit_event(SKILL_GRAPH_CACHE, profile_id=profile.id, hit=False, regenerate=regenerate)
        lookup, leader = await self._flights.do(profile.id, lambda: self._generate(profile, regenerate))
        if leader:
            return lookup
        return SkillGraphLookup(graph=lookup.graph.model_copy(deep=True))

    async def _generate(self, profile: TargetProfile, regenerate: bool) -> SkillGraphLookup:
        if not regenerate:
            existing = self.get_for_profile(profile.id)
            if existing is not None:
                return SkillGraphLookup(graph=existing)

        started = perf_counter()
        result = await run_generation(
            self._generator,
            PROMPT_SKILL_GRAPH,
            {
                "role": profile.role,
                "company": profile.company,
                "seniority": profile.seniority,
                "major": profile.major,
            },
            timeout=self._timeout,
        )
        drafts = build_skill_drafts(result.content)
        if not drafts:
            logger.warning("Skill graph for profile %s contained no usable skills", profile.id)
            raise GenerationFailure("skill graph contained no usable skills")

        with session_scope() as session:
            skill_ids = self._repository.ensure_skills(session, drafts)
        with session_scope() as session:
            graph, created = self._repository.create_graph(
                session,
                profile.id,
                drafts,
                skill_ids,
                model=result.model,
                tokens_consumed=result.tokens_consumed,
                replace=regenerate,
            )

        duration_ms = round((perf_counter() - started) * 1000, 2)
        logger.info(
            "Generated skill graph %s for profile %s (%s nodes, %s tokens, %.0fms)",
            graph.id,
            profile.id,
            len(graph.nodes),
            result.tokens_consumed,
            duration_ms,
        )
        emit_event(
            SKILL_GRAPH_GENERATION,
            profile_id=profile.id,
            graph_id=graph.id,
            nodes=len(graph.nodes),
            tokens=result.tokens_consumed,
            stored=created,
            regenerate=regenerate,
            duration_ms=duration_ms,
        )
        return SkillGraphLookup(graph=graph, generated=True, tokens_consumed=result.tokens_consumed)


__all__ = ["FORBIDDEN_SKILLS", "GenerationCache", "build_skill_drafts", "is_forbidden_skill"]
