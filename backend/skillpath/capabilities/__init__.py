"""Chat capability catalog."""

from .builtin import BUILTIN_CAPABILITIES, build_capability_registry
from .registry import CapabilityRegistry
from .types import CapabilityDescriptor, ParameterSchema

__all__ = [
    "BUILTIN_CAPABILITIES",
    "CapabilityDescriptor",
    "CapabilityRegistry",
    "ParameterSchema",
    "build_capability_registry",
]
