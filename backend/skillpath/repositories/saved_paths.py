"""Per-user bookmarks of generated career paths."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..career_models import SavedCareerPath, SkillNode, ensure_utc
from ..db.models import SavedCareerPathModel

logger = logging.getLogger(__name__)


class SavedCareerPathRepository:
    """Every operation is scoped to the owning user id."""

    def add(
        self,
        session: Session,
        user_id: str,
        *,
        target_id: str,
        graph_id: str,
        role: str,
        company: str,
        seniority: str,
        major: Optional[str],
        nodes: List[SkillNode],
    ) -> SavedCareerPath:
        now = datetime.now(timezone.utc)
        model = SavedCareerPathModel(
            user_id=user_id,
            target_id=target_id,
            graph_id=graph_id,
            role=role,
            company=company,
            seniority=seniority,
            major=major,
            nodes=[node.model_dump(mode="json") for node in nodes],
            created_at=now,
            updated_at=now,
        )
        session.add(model)
        session.flush()
        return self._to_domain(model)

    def list_for_user(self, session: Session, user_id: str) -> List[SavedCareerPath]:
        """Newest first."""
        stmt = (
            select(SavedCareerPathModel)
            .where(SavedCareerPathModel.user_id == user_id)
            .order_by(SavedCareerPathModel.created_at.desc(), SavedCareerPathModel.id)
        )
        return [self._to_domain(model) for model in session.execute(stmt).scalars()]

    def delete(self, session: Session, user_id: str, path_id: str) -> bool:
        """Return False when the path does not exist or belongs to someone else."""
        model = session.get(SavedCareerPathModel, path_id)
        if model is None or model.user_id != user_id:
            return False
        session.delete(model)
        session.flush()
        return True

    def _to_domain(self, model: SavedCareerPathModel) -> SavedCareerPath:
        nodes: List[SkillNode] = []
        for raw in model.nodes or []:
            try:
                nodes.append(SkillNode.model_validate(raw))
            except PydanticValidationError as exc:
                logger.warning("Dropping malformed node in saved path %s: %s", model.id, exc)
        return SavedCareerPath(
            id=model.id,
            target_id=model.target_id,
            graph_id=model.graph_id,
            role=model.role,
            company=model.company,
            seniority=model.seniority,  # type: ignore[arg-type]
            major=model.major,
            nodes=nodes,
            created_at=ensure_utc(model.created_at),
            updated_at=ensure_utc(model.updated_at),
        )


saved_career_paths = SavedCareerPathRepository()

__all__ = ["SavedCareerPathRepository", "saved_career_paths"]
