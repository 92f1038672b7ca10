"""Process-wide service instances handed to the routers as FastAPI dependencies."""

from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, status

from .capabilities import CapabilityRegistry, build_capability_registry
from .planning import PlanningService

_planning_service: Optional[PlanningService] = None
_capability_registry: Optional[CapabilityRegistry] = None


def get_planning_service() -> PlanningService:
    global _planning_service
    if _planning_service is None:
        _planning_service = PlanningService.from_settings()
    return _planning_service


def get_capability_registry() -> CapabilityRegistry:
    global _capability_registry
    if _capability_registry is None:
        _capability_registry = build_capability_registry()
    return _capability_registry


def reset_services() -> None:
    global _planning_service, _capability_registry
    _planning_service = None
    _capability_registry = None


def require_user_id(x_user_id: Optional[str] = Header(default=None, alias="X-User-Id")) -> str:
    """The upstream gateway authenticates callers and forwards their id."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header.")
    return user_id


__all__ = [
    "get_capability_registry",
    "get_planning_service",
    "require_user_id",
    "reset_services",
]
