"""Generative calls behind a small ``Generator`` seam.

Production traffic goes through ``AgentGenerator``, which runs one OpenAI
Agents SDK agent per prompt kind. Tests swap in any object with a matching
``generate`` coroutine.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Type, cast

from agents import Agent, ModelSettings, RunConfig, Runner
from openai.types.shared.reasoning import Reasoning
from openai.types.shared.reasoning_effort import ReasoningEffort
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .config import Settings, get_settings
from .errors import GenerationFailure
from .prompts import (
    COURSE_MATCH_INSTRUCTIONS,
    SKILL_GRAPH_INSTRUCTIONS,
    build_course_match_prompt,
    build_skill_graph_prompt,
)

logger = logging.getLogger(__name__)

PROMPT_SKILL_GRAPH = "skill_graph"
PROMPT_COURSE_MATCH = "course_match"


class SkillGraphNodePayload(BaseModel):
    name: str
    description: str = ""
    prerequisites: List[str] = Field(default_factory=list)


class SkillGraphPayload(BaseModel):
    nodes: List[SkillGraphNodePayload] = Field(default_factory=list)


class CourseMatchEntry(BaseModel):
    index: int
    relevance_score: float = 0
    reasoning: str = ""


class CourseMatchPayload(BaseModel):
    recommendations: List[CourseMatchEntry] = Field(default_factory=list)


OUTPUT_TYPES: Dict[str, Type[BaseModel]] = {
    PROMPT_SKILL_GRAPH: SkillGraphPayload,
    PROMPT_COURSE_MATCH: CourseMatchPayload,
}


@dataclass
class GenerationResult:
    content: Any
    tokens_consumed: int = 0
    model: Optional[str] = None


class Generator(Protocol):
    async def generate(self, prompt_kind: str, parameters: Dict[str, Any]) -> GenerationResult: ...


def _strip_code_fence(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.split("\n", 1)[1] if "\n" in cleaned else ""
        if cleaned.rstrip().endswith("```"):
            cleaned = cleaned.rstrip()[:-3]
    return cleaned.strip()


def coerce_payload(prompt_kind: str, payload: Any) -> BaseModel:
    """Validate agent output (model instance, dict or JSON text) as the kind's payload type."""
    output_type = OUTPUT_TYPES[prompt_kind]
    if isinstance(payload, output_type):
        return payload
    if isinstance(payload, BaseModel):
        return output_type.model_validate(payload.model_dump())
    if isinstance(payload, str):
        payload = json.loads(_strip_code_fence(payload))
    if isinstance(payload, list):
        key = "nodes" if prompt_kind == PROMPT_SKILL_GRAPH else "recommendations"
        payload = {key: payload}
    if isinstance(payload, dict):
        return output_type.model_validate(payload)
    raise TypeError(f"Unsupported {prompt_kind} payload type: {type(payload).__name__}")


def _reasoning_effort(value: str) -> ReasoningEffort:
    allowed = {"minimal", "low", "medium", "high"}
    effort = value if value in allowed else "low"
    return cast(ReasoningEffort, effort)


class AgentGenerator:
    """Runs a structured-output agent for each prompt kind."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._agents: Dict[str, Agent[Any]] = {}

    @property
    def model(self) -> str:
        return self._settings.agent_model

    def _agent(self, prompt_kind: str) -> Agent[Any]:
        agent = self._agents.get(prompt_kind)
        if agent is None:
            if prompt_kind == PROMPT_SKILL_GRAPH:
                name, instructions = "SkillPath Skill Graph", SKILL_GRAPH_INSTRUCTIONS
            elif prompt_kind == PROMPT_COURSE_MATCH:
                name, instructions = "SkillPath Course Matcher", COURSE_MATCH_INSTRUCTIONS
            else:
                raise ValueError(f"Unknown prompt kind: {prompt_kind}")
            agent = Agent(
                name=name,
                instructions=instructions,
                model=self.model,
                tools=[],
                output_type=OUTPUT_TYPES[prompt_kind],
                model_settings=ModelSettings(store=False),
            )
            self._agents[prompt_kind] = agent
        return agent

    def _message(self, prompt_kind: str, parameters: Dict[str, Any]) -> str:
        if prompt_kind == PROMPT_SKILL_GRAPH:
            return build_skill_graph_prompt(
                parameters["role"],
                parameters["company"],
                parameters["seniority"],
                parameters.get("major"),
            )
        return build_course_match_prompt(
            parameters["skill_name"],
            parameters["courses"],
            parameters.get("limit", self._settings.course_result_limit),
        )

    async def generate(self, prompt_kind: str, parameters: Dict[str, Any]) -> GenerationResult:
        agent = self._agent(prompt_kind)
        result = await Runner.run(
            agent,
            self._message(prompt_kind, parameters),
            run_config=RunConfig(
                model_settings=ModelSettings(
                    reasoning=Reasoning(effort=_reasoning_effort(self._settings.agent_reasoning)),
                )
            ),
        )
        content = coerce_payload(prompt_kind, result.final_output)
        usage = getattr(result.context_wrapper, "usage", None)
        tokens = int(getattr(usage, "total_tokens", 0) or 0)
        logger.debug("Agent %s used %s tokens", agent.name, tokens)
        return GenerationResult(content=content, tokens_consumed=tokens, model=self.model)


async def run_generation(
    generator: Generator,
    prompt_kind: str,
    parameters: Dict[str, Any],
    *,
    timeout: float,
) -> GenerationResult:
    """Await ``generator`` within ``timeout`` seconds and validate its content.

    Every failure leaves as ``GenerationFailure``; cancellation propagates untouched.
    """
    try:
        result = await asyncio.wait_for(generator.generate(prompt_kind, parameters), timeout=timeout)
        result.content = coerce_payload(prompt_kind, result.content)
        return result
    except asyncio.TimeoutError as exc:
        logger.error("%s generation timed out after %.1fs", prompt_kind, timeout)
        raise GenerationFailure(f"{prompt_kind} generation timed out") from exc
    except GenerationFailure:
        raise
    except (PydanticValidationError, ValueError, TypeError) as exc:
        # json.JSONDecodeError is a ValueError.
        logger.warning("%s generation returned an unusable payload: %s", prompt_kind, exc)
        raise GenerationFailure(f"invalid {prompt_kind} payload") from exc
    except Exception as exc:  # noqa: BLE001
        logger.exception("%s generation failed", prompt_kind)
        raise GenerationFailure(str(exc)) from exc


__all__ = [
    "AgentGenerator",
    "CourseMatchEntry",
    "CourseMatchPayload",
    "GenerationResult",
    "Generator",
    "PROMPT_COURSE_MATCH",
    "PROMPT_SKILL_GRAPH",
    "SkillGraphNodePayload",
    "SkillGraphPayload",
    "coerce_payload",
    "run_generation",
]
