"""Map a (role, company, seniority, major) request onto a stable target profile."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from .career_models import SENIORITY_LEVELS, TargetProfile
from .db.session import session_scope
from .errors import ValidationError
from .repositories.target_profiles import TargetProfileRepository, target_profiles

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[-_\s]+")


def normalize_component(value: str) -> str:
    """Lower-case, trim and collapse whitespace, hyphens and underscores to one space."""
    return _SEPARATORS.sub(" ", value.strip().lower()).strip()


def profile_lookup_key(role: str, company: str, seniority: str, major: Optional[str]) -> str:
    return "|".join(
        [
            normalize_component(role),
            normalize_component(company),
            normalize_component(seniority),
            normalize_component(major) if major else "",
        ]
    )


@dataclass(frozen=True)
class ProfileRequest:
    role: str
    company: str
    seniority: str
    major: Optional[str]

    @property
    def lookup_key(self) -> str:
        return profile_lookup_key(self.role, self.company, self.seniority, self.major)


def validate_profile_request(
    role: Optional[str],
    company: Optional[str],
    seniority: Optional[str],
    major: Optional[str] = None,
) -> ProfileRequest:
    role = (role or "").strip()
    company = (company or "").strip()
    if not role or not company:
        raise ValidationError("Role and company are required.")
    level = normalize_component(seniority or "")
    if level not in SENIORITY_LEVELS:
        raise ValidationError(
            f"Seniority must be one of: {', '.join(SENIORITY_LEVELS)}.",
            allowed=list(SENIORITY_LEVELS),
        )
    major = (major or "").strip() or None
    return ProfileRequest(role=role, company=company, seniority=level, major=major)


class ProfileResolver:
    def __init__(self, repository: TargetProfileRepository = target_profiles) -> None:
        self._repository = repository

    def resolve(
        self,
        role: Optional[str],
        company: Optional[str],
        seniority: Optional[str],
        major: Optional[str] = None,
    ) -> TargetProfile:
        request = validate_profile_request(role, company, seniority, major)
        with session_scope() as session:
            profile, created = self._repository.find_or_create(
                session,
                lookup_key=request.lookup_key,
                role=request.role,
                company=request.company,
                seniority=request.seniority,
                major=request.major,
            )
        if created:
            logger.info("Created target profile %s for %s", profile.id, request.lookup_key)
        return profile

    def get(self, profile_id: str) -> TargetProfile | None:
        with session_scope(commit=False) as session:
            return self._repository.get(session, profile_id)


__all__ = [
    "ProfileRequest",
    "ProfileResolver",
    "normalize_component",
    "profile_lookup_key",
    "validate_profile_request",
]
