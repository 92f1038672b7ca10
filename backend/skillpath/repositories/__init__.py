"""Session-level record store access used by the planning services."""

from .courses import CatalogCourse, CourseDirectoryRepository, course_directory, school_variations
from .saved_paths import SavedCareerPathRepository, saved_career_paths
from .skill_graphs import SkillGraphRepository, SkillNodeDraft, skill_graphs
from .target_profiles import TargetProfileRepository, target_profiles
from .usage import UsageRepository, period_start_for, usage_records

__all__ = [
    "CatalogCourse",
    "CourseDirectoryRepository",
    "SavedCareerPathRepository",
    "SkillGraphRepository",
    "SkillNodeDraft",
    "TargetProfileRepository",
    "UsageRepository",
    "course_directory",
    "period_start_for",
    "saved_career_paths",
    "school_variations",
    "skill_graphs",
    "target_profiles",
    "usage_records",
]
