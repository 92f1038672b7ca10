"""Request-level orchestration: quota policy around the profile, graph and course caches."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import List, Optional

from .career_models import CareerPathResult, CourseScanResult, SavedCareerPath, SkillGraph, SkillNode
from .config import Settings, get_settings
from .course_cache import CourseRecommendationCache
from .db.session import session_scope
from .errors import NotFound, ValidationError
from .generation import AgentGenerator, Generator
from .profile_resolver import ProfileResolver, validate_profile_request
from .quota import QuotaLedger, UsageRecordOutcome, UsageSummary
from .repositories.saved_paths import SavedCareerPathRepository, saved_career_paths
from .skill_graph_service import GenerationCache

logger = logging.getLogger(__name__)


class PlanningService:
    def __init__(
        self,
        *,
        ledger: QuotaLedger,
        resolver: ProfileResolver,
        graphs: GenerationCache,
        courses: CourseRecommendationCache,
        skill_graph_estimate: int = 5000,
        course_scan_estimate: int = 2000,
        saved_paths: SavedCareerPathRepository = saved_career_paths,
    ) -> None:
        self.ledger = ledger
        self.resolver = resolver
        self.graphs = graphs
        self.courses = courses
        self._skill_graph_estimate = skill_graph_estimate
        self._course_scan_estimate = course_scan_estimate
        self._saved_paths = saved_paths

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, generator: Optional[Generator] = None) -> "PlanningService":
        settings = settings or get_settings()
        generator = generator or AgentGenerator(settings)
        return cls(
            ledger=QuotaLedger(
                default_plan_name=settings.default_plan_name,
                default_plan_limit=settings.default_plan_monthly_tokens,
            ),
            resolver=ProfileResolver(),
            graphs=GenerationCache(generator, timeout=settings.generation_timeout_seconds),
            courses=CourseRecommendationCache(
                generator,
                timeout=settings.generation_timeout_seconds,
                ttl=timedelta(hours=settings.course_cache_ttl_hours),
                result_limit=settings.course_result_limit,
            ),
            skill_graph_estimate=settings.skill_graph_estimated_tokens,
            course_scan_estimate=settings.course_scan_estimated_tokens,
        )

    async def generate_career_path(
        self,
        user_id: str,
        role: Optional[str],
        company: Optional[str],
        seniority: Optional[str] = "mid",
        major: Optional[str] = None,
        *,
        regenerate: bool = False,
    ) -> CareerPathResult:
        request = validate_profile_request(role, company, seniority, major)
        self.ledger.ensure_allowed(user_id, self._skill_graph_estimate, operation="skill_graph")

        profile = self.resolver.resolve(request.role, request.company, request.seniority, request.major)
        lookup = await self.graphs.get_or_generate(profile, regenerate=regenerate)
        if lookup.generated:
            self._charge(user_id, lookup.tokens_consumed, self._skill_graph_estimate, "skill_graph")

        return CareerPathResult(
            target_id=profile.id,
            graph_id=lookup.graph.id,
            role=profile.role,
            company=profile.company,
            seniority=profile.seniority,
            major=profile.major,
            generated_at=lookup.graph.generated_at,
            nodes=lookup.graph.nodes,
            cached=not lookup.generated,
        )

    async def scan_courses(
        self,
        user_id: str,
        skill_id: str,
        skill_name: Optional[str] = None,
        school: Optional[str] = None,
        *,
        force_rescan: bool = False,
    ) -> CourseScanResult:
        result = await self.courses.scan_courses(
            skill_id,
            skill_name,
            school,
            user_id=user_id,
            force_rescan=force_rescan,
            before_generate=lambda: self.ledger.ensure_allowed(
                user_id, self._course_scan_estimate, operation="course_scan"
            ),
        )
        if result.generated:
            self._charge(user_id, result.tokens_consumed, self._course_scan_estimate, "course_scan")
        return result

    def get_graph(self, graph_id: str) -> SkillGraph:
        graph = self.graphs.get_graph(graph_id)
        if graph is None:
            raise NotFound("Skill graph not found.", graph_id=graph_id)
        return graph

    def get_usage(self, user_id: str) -> UsageSummary:
        return self.ledger.get_usage(user_id)

    def save_career_path(
        self,
        user_id: str,
        target_id: Optional[str],
        graph_id: Optional[str],
        *,
        role: Optional[str] = None,
        company: Optional[str] = None,
        seniority: Optional[str] = None,
        major: Optional[str] = None,
        nodes: Optional[List[SkillNode]] = None,
    ) -> SavedCareerPath:
        """Bookmark a generated path for ``user_id``.

        Display fields default to the target profile and ``nodes`` to the stored
        graph, which must then belong to that target.
        """
        target_id = (target_id or "").strip()
        graph_id = (graph_id or "").strip()
        if not target_id or not graph_id:
            raise ValidationError("target_id and graph_id are required.")

        profile = self.resolver.get(target_id)
        if profile is None:
            raise NotFound("Career target not found.", target_id=target_id)

        if nodes is None:
            graph = self.get_graph(graph_id)
            if graph.profile_id != profile.id:
                raise ValidationError(
                    "Skill graph does not belong to this career target.", graph_id=graph_id, target_id=target_id
                )
            nodes = graph.nodes

        request = validate_profile_request(
            role or profile.role,
            company or profile.company,
            seniority or profile.seniority,
            profile.major if major is None else major,
        )
        with session_scope() as session:
            saved = self._saved_paths.add(
                session,
                user_id,
                target_id=profile.id,
                graph_id=graph_id,
                role=request.role,
                company=request.company,
                seniority=request.seniority,
                major=request.major,
                nodes=list(nodes),
            )
        logger.info("Saved career path %s for %s (graph %s)", saved.id, user_id, graph_id)
        return saved

    def list_saved_paths(self, user_id: str) -> List[SavedCareerPath]:
        with session_scope(commit=False) as session:
            return self._saved_paths.list_for_user(session, user_id)

    def delete_saved_path(self, user_id: str, path_id: str) -> None:
        with session_scope() as session:
            deleted = self._saved_paths.delete(session, user_id, path_id)
        if not deleted:
            raise NotFound("Career path not found.", path_id=path_id)
        logger.info("Deleted saved career path %s for %s", path_id, user_id)

    def _charge(self, user_id: str, actual_tokens: int, estimate: int, operation: str) -> UsageRecordOutcome:
        tokens = actual_tokens
        if tokens <= 0:
            logger.warning(
                "Model reported no usage for %s by %s; recording the %s token estimate instead",
                operation,
                user_id,
                estimate,
            )
            tokens = estimate
        return self.ledger.record_usage(user_id, tokens, operation=operation)


__all__ = ["PlanningService"]
