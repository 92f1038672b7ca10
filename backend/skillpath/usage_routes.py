"""Usage reporting for the calling user."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from .planning import PlanningService
from .services import get_planning_service, require_user_id

router = APIRouter(prefix="/api/usage", tags=["usage"])


class UsagePayload(BaseModel):
    plan_name: str
    tokens_used: int
    monthly_limit: int
    remaining: int
    period_start: date


@router.get("", response_model=UsagePayload)
def get_usage(
    user_id: str = Depends(require_user_id),
    service: PlanningService = Depends(get_planning_service),
) -> UsagePayload:
    summary = service.get_usage(user_id)
    return UsagePayload(
        plan_name=summary.plan_name,
        tokens_used=summary.tokens_used,
        monthly_limit=summary.monthly_limit,
        remaining=summary.remaining,
        period_start=summary.period_start,
    )


__all__ = ["router"]
