# ============================================================================
# Practice Problem Endpoints
# ============================================================================
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from typing import Optional, List
from uuid import UUID

from learnquest.api.deps import get_submission_service
from learnquest.core.security import get_current_user_id
from learnquest.schemas.progress import (
    SubmissionResult, SubmissionItem, ProblemStatus, PracticeStats
)
from learnquest.services.practice.submissions import SubmissionService

router = APIRouter(tags=["practice"])

class SubmitSolutionRequest(BaseModel):
    code: str = Field(..., min_length=1)

@router.post("/problems/{problem_id}/submissions", response_model=SubmissionResult)
async def submit_solution(
    problem_id: UUID,
    request: SubmitSolutionRequest,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    service: SubmissionService = Depends(get_submission_service)
):
    """Run a solution against the problem's tests"""
    return (await service.submit_solution(user_id, problem_id, request.code)).unwrap()

@router.get("/problems/{problem_id}/submissions", response_model=List[SubmissionItem])
async def list_submissions(
    problem_id: UUID,
    limit: int = Query(20, ge=1, le=100),
    user_id: Optional[UUID] = Depends(get_current_user_id),
    service: SubmissionService = Depends(get_submission_service)
):
    return (await service.list_submissions(user_id, problem_id, limit)).unwrap()

@router.get("/problems/{problem_id}/status", response_model=ProblemStatus)
async def get_problem_status(
    problem_id: UUID,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    service: SubmissionService = Depends(get_submission_service)
):
    return (await service.get_problem_state(user_id, problem_id)).unwrap()

@router.get("/practice/stats", response_model=PracticeStats)
async def get_practice_stats(
    user_id: Optional[UUID] = Depends(get_current_user_id),
    service: SubmissionService = Depends(get_submission_service)
):
    return (await service.get_practice_stats(user_id)).unwrap()
