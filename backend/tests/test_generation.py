from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from skillpath import generation
from skillpath.config import Settings
from skillpath.errors import GenerationFailure
from skillpath.generation import (
    PROMPT_COURSE_MATCH,
    PROMPT_SKILL_GRAPH,
    AgentGenerator,
    CourseMatchPayload,
    SkillGraphPayload,
    coerce_payload,
    run_generation,
)


def test_coerce_payload_accepts_fenced_json_and_bare_lists() -> None:
    fenced = '```json\n{"nodes": [{"name": "Rust"}]}\n```'
    assert coerce_payload(PROMPT_SKILL_GRAPH, fenced).nodes[0].name == "Rust"

    matches = coerce_payload(PROMPT_COURSE_MATCH, [{"index": 3, "relevance_score": 42}])
    assert isinstance(matches, CourseMatchPayload)
    assert matches.recommendations[0].index == 3


def test_run_generation_wraps_invalid_payloads(fake_generator) -> None:
    fake_generator.skill_graph = "not json"  # type: ignore[assignment]
    with pytest.raises(GenerationFailure) as excinfo:
        asyncio.run(run_generation(fake_generator, PROMPT_SKILL_GRAPH, {}, timeout=1))
    assert excinfo.value.status_code == 502
    assert excinfo.value.as_payload() == {"error": GenerationFailure.public_message}


def test_run_generation_times_out(fake_generator) -> None:
    fake_generator.delay = 0.2
    with pytest.raises(GenerationFailure):
        asyncio.run(run_generation(fake_generator, PROMPT_SKILL_GRAPH, {}, timeout=0.01))


def test_agent_generator_reports_run_usage(monkeypatch) -> None:
    captured = {}

    async def fake_run(agent, message, run_config=None, **_kwargs):
        captured["agent"] = agent
        captured["message"] = message
        return SimpleNamespace(
            final_output=SkillGraphPayload.model_validate({"nodes": [{"name": "Kafka"}]}),
            context_wrapper=SimpleNamespace(usage=SimpleNamespace(total_tokens=321)),
        )

    monkeypatch.setattr(generation.Runner, "run", fake_run)
    generator = AgentGenerator(Settings(SKILLPATH_AGENT_MODEL="gpt-test"))

    result = asyncio.run(
        generator.generate(
            PROMPT_SKILL_GRAPH,
            {"role": "Data Engineer", "company": "Acme", "seniority": "senior", "major": "Physics"},
        )
    )

    assert result.tokens_consumed == 321
    assert result.model == "gpt-test"
    assert result.content.nodes[0].name == "Kafka"
    assert captured["agent"].output_type is SkillGraphPayload
    assert "senior-level Data Engineer position at Acme (Physics major)" in captured["message"]
