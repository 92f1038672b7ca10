"""Database-backed target profile repository."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..career_models import TargetProfile, ensure_utc
from ..db.models import TargetProfileModel

logger = logging.getLogger(__name__)


class TargetProfileRepository:
    """Find-or-create access to target profiles keyed by their normalised lookup key."""

    def get(self, session: Session, profile_id: str) -> TargetProfile | None:
        model = session.get(TargetProfileModel, profile_id)
        return self._to_domain(model) if model else None

    def find_or_create(
        self,
        session: Session,
        *,
        lookup_key: str,
        role: str,
        company: str,
        seniority: str,
        major: Optional[str],
    ) -> tuple[TargetProfile, bool]:
        """Return ``(profile, created)``.

        Must run in a session that holds no other pending work: a lost insert
        race rolls the whole transaction back before re-reading the winner.
        """
        existing = self._model_by_key(session, lookup_key)
        if existing is not None:
            return self._to_domain(existing), False

        model = TargetProfileModel(
            lookup_key=lookup_key,
            role=role,
            company=company,
            seniority=seniority,
            major=major,
        )
        session.add(model)
        try:
            session.flush()
        except IntegrityError:
            session.rollback()
            winner = self._model_by_key(session, lookup_key)
            if winner is None:
                raise
            logger.info("Target profile %s was created concurrently; reusing it", winner.id)
            return self._to_domain(winner), False
        return self._to_domain(model), True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _model_by_key(self, session: Session, lookup_key: str) -> TargetProfileModel | None:
        stmt = select(TargetProfileModel).where(TargetProfileModel.lookup_key == lookup_key)
        return session.execute(stmt).scalar_one_or_none()

    def _to_domain(self, model: TargetProfileModel) -> TargetProfile:
        return TargetProfile(
            id=model.id,
            role=model.role,
            company=model.company,
            seniority=model.seniority,  # type: ignore[arg-type]
            major=model.major,
            created_at=ensure_utc(model.created_at),
        )


target_profiles = TargetProfileRepository()

__all__ = ["TargetProfileRepository", "target_profiles"]
