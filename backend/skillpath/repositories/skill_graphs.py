"""Database-backed skill graph and skill repository."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..career_models import CourseRecommendation, SkillGraph, SkillNode, ensure_utc
from ..db.models import SkillGraphModel, SkillGraphNodeModel, SkillModel

logger = logging.getLogger(__name__)

MAX_SKILL_INSERT_ATTEMPTS = 3


@dataclass
class SkillNodeDraft:
    """A validated node ready to persist; prerequisites are skill name keys."""

    key: str
    name: str
    description: str = ""
    prerequisite_keys: List[str] = field(default_factory=list)


class SkillGraphRepository:
    def get(self, session: Session, graph_id: str) -> SkillGraph | None:
        model = session.get(SkillGraphModel, graph_id)
        return self._to_domain(model) if model else None

    def get_for_profile(self, session: Session, profile_id: str) -> SkillGraph | None:
        model = self._graph_for_profile(session, profile_id)
        return self._to_domain(model) if model else None

    def ensure_skills(self, session: Session, drafts: Iterable[SkillNodeDraft]) -> Dict[str, str]:
        """Find or create the shared skill rows, returning ``name_key -> skill id``.

        Commits on its own so a lost insert race only replays skill creation.
        """
        names = {draft.key: draft.name for draft in drafts}
        for attempt in range(1, MAX_SKILL_INSERT_ATTEMPTS + 1):
            stmt = select(SkillModel).where(SkillModel.name_key.in_(list(names)))
            known = {model.name_key: model.id for model in session.execute(stmt).scalars()}
            missing = [key for key in names if key not in known]
            if not missing:
                return known
            created = [SkillModel(name_key=key, name=names[key]) for key in missing]
            session.add_all(created)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                logger.info("Skill insert raced with another writer (attempt %s); retrying", attempt)
                continue
            known.update({model.name_key: model.id for model in created})
            return known
        raise RuntimeError("Unable to persist skills after repeated conflicts.")

    def create_graph(
        self,
        session: Session,
        profile_id: str,
        drafts: List[SkillNodeDraft],
        skill_ids: Dict[str, str],
        *,
        model: Optional[str] = None,
        tokens_consumed: int = 0,
        replace: bool = False,
    ) -> tuple[SkillGraph, bool]:
        """Write the graph and every node in one flush; returns ``(graph, created)``.

        When another writer already stored a graph for the profile (and this is
        not a replacement) the stored graph wins and ``created`` is False.
        """
        if replace:
            previous = self._graph_for_profile(session, profile_id)
            if previous is not None:
                session.delete(previous)
                session.flush()

        graph = SkillGraphModel(
            profile_id=profile_id,
            generated_at=datetime.now(timezone.utc),
            model=model,
            tokens_consumed=tokens_consumed,
        )
        for position, draft in enumerate(drafts):
            graph.nodes.append(
                SkillGraphNodeModel(
                    skill_id=skill_ids[draft.key],
                    position=position,
                    description=draft.description,
                    prerequisites=[skill_ids[key] for key in draft.prerequisite_keys],
                )
            )
        session.add(graph)
        try:
            session.flush()
        except IntegrityError:
            if replace:
                raise
            session.rollback()
            existing = self._graph_for_profile(session, profile_id)
            if existing is None:
                raise
            logger.info("Skill graph for profile %s was stored concurrently; reusing %s", profile_id, existing.id)
            return self._to_domain(existing), False
        session.refresh(graph)
        return self._to_domain(graph), True

    def get_skill(self, session: Session, skill_id: str) -> SkillNode | None:
        model = session.get(SkillModel, skill_id)
        if model is None:
            return None
        return SkillNode(
            id=model.id,
            name=model.name,
            cached_courses=self._load_courses(model),
            courses_last_scanned_at=ensure_utc(model.courses_last_scanned_at),
        )

    def replace_cached_courses(
        self,
        session: Session,
        skill_id: str,
        courses: List[CourseRecommendation],
        scanned_at: datetime,
    ) -> bool:
        """Overwrite a skill's course cache in a single-row update."""
        result = session.execute(
            update(SkillModel)
            .where(SkillModel.id == skill_id)
            .values(
                cached_courses=[course.model_dump(mode="json") for course in courses],
                courses_last_scanned_at=scanned_at,
            )
        )
        return bool(result.rowcount)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _graph_for_profile(self, session: Session, profile_id: str) -> SkillGraphModel | None:
        stmt = select(SkillGraphModel).where(SkillGraphModel.profile_id == profile_id)
        return session.execute(stmt).scalar_one_or_none()

    def _load_courses(self, model: SkillModel) -> List[CourseRecommendation]:
        courses: List[CourseRecommendation] = []
        for entry in model.cached_courses or []:
            try:
                courses.append(CourseRecommendation.model_validate(entry))
            except PydanticValidationError as exc:
                logger.warning("Dropping malformed cached course for skill %s: %s", model.id, exc)
        return courses

    def _to_domain(self, model: SkillGraphModel) -> SkillGraph:
        nodes = [
            SkillNode(
                id=node.skill.id,
                name=node.skill.name,
                description=node.description or "",
                prerequisites=list(node.prerequisites or []),
                cached_courses=self._load_courses(node.skill),
                courses_last_scanned_at=ensure_utc(node.skill.courses_last_scanned_at),
            )
            for node in sorted(model.nodes, key=lambda entry: entry.position)
        ]
        return SkillGraph(
            id=model.id,
            profile_id=model.profile_id,
            generated_at=ensure_utc(model.generated_at) or datetime.now(timezone.utc),
            nodes=nodes,
        )


skill_graphs = SkillGraphRepository()

__all__ = ["SkillGraphRepository", "SkillNodeDraft", "skill_graphs"]
