from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from skillpath.db.models import TargetProfileModel
from skillpath.db.session import session_scope
from skillpath.errors import ValidationError
from skillpath.profile_resolver import ProfileResolver, normalize_component, profile_lookup_key


def _profile_count() -> int:
    with session_scope(commit=False) as session:
        return session.query(TargetProfileModel).count()


def test_normalize_component_collapses_separators() -> None:
    assert normalize_component("  Full-Stack__Engineer ") == "full stack engineer"
    assert profile_lookup_key("ML Engineer", "Acme", "mid", None) == "ml engineer|acme|mid|"


def test_case_and_whitespace_variants_share_one_profile(database) -> None:
    resolver = ProfileResolver()

    first = resolver.resolve(" software engineer ", "ACME", "mid", None)
    second = resolver.resolve("Software Engineer", "Acme", "mid", None)

    assert first.id == second.id
    assert first.role == "software engineer"
    assert _profile_count() == 1


def test_major_distinguishes_profiles(database) -> None:
    resolver = ProfileResolver()
    without_major = resolver.resolve("Data Scientist", "Acme", "senior")
    with_major = resolver.resolve("Data Scientist", "Acme", "senior", "Statistics")
    blank_major = resolver.resolve("data scientist", "acme", "SENIOR", "   ")

    assert without_major.id != with_major.id
    assert blank_major.id == without_major.id
    assert with_major.major == "Statistics"


@pytest.mark.parametrize(
    "role, company, seniority",
    [
        ("", "Acme", "mid"),
        ("Engineer", "   ", "mid"),
        ("Engineer", "Acme", "intern"),
        ("Engineer", "Acme", None),
    ],
)
def test_invalid_requests_are_rejected(database, role, company, seniority) -> None:
    with pytest.raises(ValidationError) as excinfo:
        ProfileResolver().resolve(role, company, seniority)
    assert excinfo.value.status_code == 400
    assert _profile_count() == 0


def test_concurrent_equivalent_resolutions_create_one_profile(database) -> None:
    resolver = ProfileResolver()
    variants = [("Backend Developer", "Stripe"), ("backend developer", "STRIPE"), ("backend-developer", " stripe ")] * 4

    with ThreadPoolExecutor(max_workers=6) as pool:
        profiles = list(pool.map(lambda args: resolver.resolve(args[0], args[1], "mid"), variants))

    assert len({profile.id for profile in profiles}) == 1
    assert _profile_count() == 1
