"""Built-in capabilities and the registry factory used at startup."""

from __future__ import annotations

from ..career_models import SENIORITY_LEVELS
from .registry import CapabilityRegistry
from .types import CapabilityDescriptor, ParameterSchema


def _text(description: str) -> ParameterSchema:
    return ParameterSchema(type="string", description=description)


def _note_parameters(purpose: str) -> ParameterSchema:
    return ParameterSchema(
        type="object",
        properties={
            "note_id": _text(f"The ID of the note to generate {purpose} from."),
            "note_name": _text("The name of the note."),
            "note_content": _text(f"The content of the note to generate {purpose} from."),
        },
        required=["note_id", "note_name", "note_content"],
    )


CAREER_PATH = CapabilityDescriptor(
    id="career_path",
    function_name="generate_career_path",
    description="Generate skill graphs for career paths based on role and company.",
    function_description=(
        "Generate a skill graph for a career path. Always extract both the role and the company from the "
        "user message, even when the phrasing is informal."
    ),
    keywords=["career", "job", "role", "work", "position", "skill", "graph", "path", "career path"],
    parameters=ParameterSchema(
        type="object",
        properties={
            "role": _text(
                'The complete job role or title, e.g. "fullstack engineer", "ML engineer", "data scientist". '
                'Keep every word of the role: for "fullstack engineer" extract "fullstack engineer", not "engineer".'
            ),
            "company": _text(
                'The company or organisation name without prepositions: for "at OpenAI" extract "OpenAI".'
            ),
            "seniority": ParameterSchema(
                type="string",
                description="The seniority level, only when explicitly mentioned. Omit otherwise.",
                enum=list(SENIORITY_LEVELS),
            ),
            "major": _text('The major or discipline, only when explicitly mentioned (e.g. "CS", "Math").'),
        },
        required=["role", "company"],
    ),
    examples=[
        "I want to work as a fullstack engineer at OpenAI",
        "Show me skills needed for a software engineer at Google",
        "What skills do I need for a ML engineer role at Anthropic",
        "Career path for backend developer at Stripe",
    ],
)

COURSE_SEARCH = CapabilityDescriptor(
    id="course_search",
    function_name="search_courses",
    description="Search for relevant courses based on career interests or academic requirements.",
    function_description=(
        "Search for relevant courses based on career interests or academic requirements. Extract school "
        "and department only when they are explicitly mentioned."
    ),
    keywords=["course", "courses", "class", "classes", "curriculum", "program", "major", "department"],
    parameters=ParameterSchema(
        type="object",
        properties={
            "query": _text('The question about courses, e.g. "courses for AI career".'),
            "school": _text("The university name, only when explicitly mentioned."),
            "department": _text("The department or major, only when explicitly mentioned."),
        },
        required=["query"],
    ),
    examples=[
        "recommend Stanford CS courses",
        "courses for AI career",
        "Berkeley Computer Science courses",
    ],
)

FLASHCARD = CapabilityDescriptor(
    id="flashcard",
    function_name="generate_flashcard",
    description="Generate flashcards from notes (requires a note mention like @[note name]).",
    function_description="Generate flashcards from a note. Requires a note mention in the user message.",
    keywords=["flashcard", "flash card", "study cards", "memorization", "review cards"],
    parameters=_note_parameters("flashcards"),
    required_context=["mentions"],
    examples=[
        "create flashcards from @[note]",
        "make study cards for @[note]",
        "flashcards for @[note]",
    ],
)

TEST = CapabilityDescriptor(
    id="test",
    function_name="generate_test",
    description="Generate a test or quiz from notes (requires a note mention like @[note name]).",
    function_description="Generate a test or quiz from a note. Requires a note mention in the user message.",
    keywords=["test", "quiz", "exam", "questions", "assessment"],
    parameters=_note_parameters("a test"),
    required_context=["mentions"],
    examples=[
        "turn @[note] into a test",
        "make a quiz from @[note]",
        "generate practice questions for @[note]",
    ],
)

BUILTIN_CAPABILITIES = (TEST, FLASHCARD, COURSE_SEARCH, CAREER_PATH)


def build_capability_registry() -> CapabilityRegistry:
    registry = CapabilityRegistry()
    for capability in BUILTIN_CAPABILITIES:
        registry.register(capability)
    return registry


__all__ = [
    "BUILTIN_CAPABILITIES",
    "CAREER_PATH",
    "COURSE_SEARCH",
    "FLASHCARD",
    "TEST",
    "build_capability_registry",
]
