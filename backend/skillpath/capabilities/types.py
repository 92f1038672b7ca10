"""Capability descriptors advertised to the chat model as callable tools."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

ParameterType = Literal["string", "number", "integer", "boolean", "object", "array"]


class ParameterSchema(BaseModel):
    type: ParameterType
    description: Optional[str] = None
    enum: Optional[List[str]] = None
    properties: Optional[Dict[str, "ParameterSchema"]] = None
    items: Optional["ParameterSchema"] = None
    required: Optional[List[str]] = None

    @model_validator(mode="after")
    def _check_shape(self) -> "ParameterSchema":
        if self.type == "array" and self.items is None:
            raise ValueError("array parameters must declare items")
        if self.properties is not None and self.type != "object":
            raise ValueError("only object parameters may declare properties")
        missing = [name for name in self.required or [] if name not in (self.properties or {})]
        if missing:
            raise ValueError(f"required fields are not declared as properties: {', '.join(missing)}")
        return self

    def as_json_schema(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class CapabilityDescriptor(BaseModel):
    id: str = Field(..., min_length=1)
    function_name: str = Field(..., min_length=1)
    description: str
    keywords: List[str] = Field(default_factory=list)
    parameters: ParameterSchema
    function_description: Optional[str] = None
    required_context: List[str] = Field(default_factory=list)
    examples: List[str] = Field(default_factory=list)

    def to_tool_schema(self) -> Dict[str, Any]:
        return {
            "name": self.function_name,
            "description": self.function_description or self.description,
            "parameters": self.parameters.as_json_schema(),
        }


ParameterSchema.model_rebuild()

__all__ = ["CapabilityDescriptor", "ParameterSchema", "ParameterType"]
