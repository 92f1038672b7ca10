"""Explicitly constructed catalog of chat capabilities."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .types import CapabilityDescriptor

logger = logging.getLogger(__name__)


class CapabilityRegistry:
    def __init__(self) -> None:
        self._capabilities: Dict[str, CapabilityDescriptor] = {}

    def register(self, capability: CapabilityDescriptor) -> None:
        if capability.id in self._capabilities:
            logger.warning("Capability %s is already registered; overwriting", capability.id)
        self._capabilities[capability.id] = capability

    def get_all(self) -> List[CapabilityDescriptor]:
        return list(self._capabilities.values())

    def get_by_id(self, capability_id: str) -> Optional[CapabilityDescriptor]:
        return self._capabilities.get(capability_id)

    def get_by_function_name(self, function_name: str) -> Optional[CapabilityDescriptor]:
        """Find the capability behind a tool call the model made."""
        for capability in self._capabilities.values():
            if capability.function_name == function_name:
                return capability
        return None

    def to_tool_schemas(self) -> List[Dict[str, Any]]:
        return [capability.to_tool_schema() for capability in self._capabilities.values()]

    def __contains__(self, capability_id: object) -> bool:
        return capability_id in self._capabilities

    def __len__(self) -> int:
        return len(self._capabilities)


__all__ = ["CapabilityRegistry"]
