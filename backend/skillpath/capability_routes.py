"""Public listing of chat capabilities for help screens."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from .capabilities import CapabilityRegistry
from .services import get_capability_registry

router = APIRouter(prefix="/api/chat", tags=["chat"])


class CapabilitySummaryPayload(BaseModel):
    id: str
    function_name: str
    description: str
    keywords: List[str] = Field(default_factory=list)
    required_context: List[str] = Field(default_factory=list)
    examples: List[str] = Field(default_factory=list)


class CapabilityListPayload(BaseModel):
    success: bool = True
    capabilities: List[CapabilitySummaryPayload] = Field(default_factory=list)


@router.get("/capabilities", response_model=CapabilityListPayload)
def list_capabilities(registry: CapabilityRegistry = Depends(get_capability_registry)) -> CapabilityListPayload:
    return CapabilityListPayload(
        capabilities=[
            CapabilitySummaryPayload(
                id=capability.id,
                function_name=capability.function_name,
                description=capability.description,
                keywords=list(capability.keywords),
                required_context=list(capability.required_context),
                examples=list(capability.examples),
            )
            for capability in registry.get_all()
        ]
    )


__all__ = ["router"]
