# ============================================================================
# Course Progress Endpoints
# ============================================================================
from fastapi import APIRouter, Depends
from typing import List, Optional
from uuid import UUID

from learnquest.api.deps import get_course_progress_service, get_content_progress_service
from learnquest.core.security import get_current_user_id
from learnquest.schemas.progress import (
    EnrollmentInfo, LessonCompletionResult,
    ContentProgressUpdate, ContentProgressInfo, ContentProgressResult
)
from learnquest.services.progress.course_progress import CourseProgressService
from learnquest.services.progress.content_progress import ContentProgressService

router = APIRouter(tags=["progress"])

@router.post("/courses/{course_id}/enroll", response_model=EnrollmentInfo)
async def enroll_in_course(
    course_id: UUID,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    service: CourseProgressService = Depends(get_course_progress_service)
):
    return (await service.enroll(user_id, course_id)).unwrap()

@router.post(
    "/courses/{course_id}/lessons/{lesson_id}/complete",
    response_model=LessonCompletionResult
)
async def complete_lesson(
    course_id: UUID,
    lesson_id: UUID,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    service: CourseProgressService = Depends(get_course_progress_service)
):
    """Complete a lesson; repeating the call is harmless"""
    return (await service.complete_lesson(user_id, course_id, lesson_id)).unwrap()

@router.get("/courses/{course_id}/progress", response_model=EnrollmentInfo)
async def get_course_progress(
    course_id: UUID,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    service: CourseProgressService = Depends(get_course_progress_service)
):
    return (await service.get_course_progress(user_id, course_id)).unwrap()

@router.get("/enrollments", response_model=List[EnrollmentInfo])
async def list_my_enrollments(
    user_id: Optional[UUID] = Depends(get_current_user_id),
    service: CourseProgressService = Depends(get_course_progress_service)
):
    return (await service.list_enrollments(user_id)).unwrap()

@router.put("/content/{content_id}/progress", response_model=ContentProgressResult)
async def update_content_progress(
    content_id: UUID,
    changes: ContentProgressUpdate,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    service: ContentProgressService = Depends(get_content_progress_service)
):
    """Report reading progress; progress never moves backwards"""
    return (await service.update_content_progress(user_id, content_id, changes)).unwrap()

@router.get("/content/{content_id}/progress", response_model=ContentProgressInfo)
async def get_content_progress(
    content_id: UUID,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    service: ContentProgressService = Depends(get_content_progress_service)
):
    return (await service.get_content_progress(user_id, content_id)).unwrap()
