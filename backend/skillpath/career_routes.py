"""Career path and course recommendation endpoints."""

from __future__ import annotations

import logging
from time import perf_counter
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from .career_models import CareerPathResult, CourseScanResult, SavedCareerPath, SkillGraph, SkillNode
from .planning import PlanningService
from .services import get_planning_service, require_user_id

router = APIRouter(prefix="/api/career", tags=["career"])
logger = logging.getLogger(__name__)


class CareerPathRequest(BaseModel):
    role: Optional[str] = Field(default=None, max_length=160)
    company: Optional[str] = Field(default=None, max_length=160)
    seniority: Optional[str] = "mid"
    major: Optional[str] = Field(default=None, max_length=160)
    regenerate: bool = False


class CourseScanRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    skill_name: Optional[str] = Field(default=None, alias="skillName", max_length=160)
    school: Optional[str] = Field(default=None, max_length=255)
    force_rescan: bool = Field(default=False, alias="forceRescan")


class SavePathRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_id: Optional[str] = Field(default=None, alias="targetId", max_length=36)
    graph_id: Optional[str] = Field(default=None, alias="graphId", max_length=36)
    role: Optional[str] = Field(default=None, max_length=160)
    company: Optional[str] = Field(default=None, max_length=160)
    seniority: Optional[str] = None
    major: Optional[str] = Field(default=None, max_length=160)
    nodes: Optional[List[SkillNode]] = None


class SavedPathResponse(BaseModel):
    success: bool = True
    career_path: SavedCareerPath


class SavedPathListResponse(BaseModel):
    success: bool = True
    career_paths: List[SavedCareerPath]


class DeletePathResponse(BaseModel):
    success: bool = True


@router.post("/generate", response_model=CareerPathResult)
async def generate_career_path(
    payload: CareerPathRequest,
    user_id: str = Depends(require_user_id),
    service: PlanningService = Depends(get_planning_service),
) -> CareerPathResult:
    started = perf_counter()
    result = await service.generate_career_path(
        user_id,
        payload.role,
        payload.company,
        payload.seniority,
        payload.major,
        regenerate=payload.regenerate,
    )
    logger.info(
        "Career path for %s: graph=%s cached=%s nodes=%s (%.0fms)",
        user_id,
        result.graph_id,
        result.cached,
        len(result.nodes),
        (perf_counter() - started) * 1000,
    )
    return result


@router.get("/graphs/{graph_id}", response_model=SkillGraph)
def get_skill_graph(
    graph_id: str,
    _user_id: str = Depends(require_user_id),
    service: PlanningService = Depends(get_planning_service),
) -> SkillGraph:
    return service.get_graph(graph_id)


@router.post("/skills/{skill_id}/courses", response_model=CourseScanResult)
async def scan_skill_courses(
    skill_id: str,
    payload: Optional[CourseScanRequest] = None,
    user_id: str = Depends(require_user_id),
    service: PlanningService = Depends(get_planning_service),
) -> CourseScanResult:
    payload = payload or CourseScanRequest()
    return await service.scan_courses(
        user_id,
        skill_id,
        payload.skill_name,
        payload.school,
        force_rescan=payload.force_rescan,
    )


@router.post("/save", response_model=SavedPathResponse)
def save_career_path(
    payload: SavePathRequest,
    user_id: str = Depends(require_user_id),
    service: PlanningService = Depends(get_planning_service),
) -> SavedPathResponse:
    saved = service.save_career_path(
        user_id,
        payload.target_id,
        payload.graph_id,
        role=payload.role,
        company=payload.company,
        seniority=payload.seniority,
        major=payload.major,
        nodes=payload.nodes,
    )
    return SavedPathResponse(career_path=saved)


@router.get("/list", response_model=SavedPathListResponse)
def list_career_paths(
    user_id: str = Depends(require_user_id),
    service: PlanningService = Depends(get_planning_service),
) -> SavedPathListResponse:
    return SavedPathListResponse(career_paths=service.list_saved_paths(user_id))


@router.delete("/{path_id}", response_model=DeletePathResponse)
def delete_career_path(
    path_id: str,
    user_id: str = Depends(require_user_id),
    service: PlanningService = Depends(get_planning_service),
) -> DeletePathResponse:
    service.delete_saved_path(user_id, path_id)
    return DeletePathResponse()


__all__ = ["router"]
