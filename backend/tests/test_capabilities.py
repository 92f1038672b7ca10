from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from skillpath.capabilities import CapabilityDescriptor, CapabilityRegistry, ParameterSchema, build_capability_registry


def _descriptor(description: str = "Look things up.") -> CapabilityDescriptor:
    return CapabilityDescriptor(
        id="lookup",
        function_name="lookup_things",
        description=description,
        keywords=["lookup"],
        parameters=ParameterSchema(
            type="object",
            properties={
                "terms": ParameterSchema(type="array", items=ParameterSchema(type="string")),
                "limit": ParameterSchema(type="integer"),
            },
            required=["terms"],
        ),
    )


def test_builtin_registry_exposes_tool_schemas() -> None:
    registry = build_capability_registry()

    assert {capability.id for capability in registry.get_all()} == {"career_path", "course_search", "flashcard", "test"}
    schemas = {schema["name"]: schema for schema in registry.to_tool_schemas()}
    career = schemas["generate_career_path"]
    assert career["parameters"]["required"] == ["role", "company"]
    assert career["parameters"]["properties"]["seniority"]["enum"] == ["entry", "mid", "senior", "staff", "principal"]
    assert "items" not in career["parameters"]["properties"]["role"]
    assert registry.get_by_id("flashcard").required_context == ["mentions"]
    assert registry.get_by_function_name("search_courses").id == "course_search"
    assert registry.get_by_id("unknown") is None


def test_reregistration_overwrites_and_warns(caplog) -> None:
    registry = CapabilityRegistry()
    registry.register(_descriptor())

    with caplog.at_level(logging.WARNING, logger="skillpath.capabilities.registry"):
        registry.register(_descriptor("Look things up, again."))

    assert len(registry) == 1
    assert registry.get_by_id("lookup").description == "Look things up, again."
    assert "already registered" in caplog.text


def test_nested_parameter_schema_serialises() -> None:
    schema = _descriptor().to_tool_schema()
    assert schema["parameters"]["properties"]["terms"] == {"type": "array", "items": {"type": "string"}}


@pytest.mark.parametrize(
    "kwargs",
    [
        {"type": "array"},
        {"type": "string", "properties": {"x": ParameterSchema(type="string")}},
        {"type": "object", "properties": {}, "required": ["missing"]},
    ],
)
def test_malformed_parameter_schemas_are_rejected(kwargs) -> None:
    with pytest.raises(ValidationError):
        ParameterSchema(**kwargs)
