# ============================================================================
# Progress & Practice Schemas
# ============================================================================
from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Dict
from datetime import datetime
from uuid import UUID

from learnquest.models.practice import SubmissionStatus, ProblemState

class EnrollmentInfo(BaseModel):
    id: UUID
    course_id: UUID
    progress: int
    current_lesson_id: Optional[UUID] = None
    enrolled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    course_title: Optional[str] = None
    completed_lessons: Optional[int] = None
    total_lessons: Optional[int] = None

class LessonCompletionResult(BaseModel):
    progress: int
    xp_awarded: int = 0
    level_up: bool = False
    section_completed: bool = False
    course_completed: bool = False
    already_completed: bool = False
    current_lesson_id: Optional[UUID] = None
    next_lesson_id: Optional[UUID] = None
    achievements_unlocked: List[str] = []

class JudgeVerdict(BaseModel):
    """What the code-execution service reports for one submission"""
    status: SubmissionStatus
    passed_tests: int = Field(..., ge=0)
    total_tests: int = Field(..., ge=0)
    message: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def derive_status(cls, data):
        if isinstance(data, dict) and data.get("status") is None:
            passed = int(data.get("passed_tests", 0) or 0)
            total = int(data.get("total_tests", 0) or 0)
            data = {**data, "status": SubmissionStatus.from_counts(passed, total)}
        return data

    @model_validator(mode="after")
    def check_counts(self):
        if self.passed_tests > self.total_tests:
            raise ValueError("passed_tests cannot exceed total_tests")
        return self

class SubmissionResult(BaseModel):
    submission_id: UUID
    status: SubmissionStatus
    passed_tests: int
    total_tests: int
    message: Optional[str] = None
    xp_awarded: int = 0
    level_up: bool = False
    solved: bool = False
    first_solve: bool = False
    achievements_unlocked: List[str] = []

class SubmissionItem(BaseModel):
    id: UUID
    status: SubmissionStatus
    passed_tests: int
    total_tests: int
    submitted_at: datetime

class ProblemStatus(BaseModel):
    problem_id: UUID
    state: ProblemState
    attempts: int

class DifficultyBreakdown(BaseModel):
    solved: int = 0
    total: int = 0

class PracticeStats(BaseModel):
    total_problems: int
    solved_problems: int
    total_submissions: int
    success_rate: int
    by_difficulty: Dict[str, DifficultyBreakdown]
    solved_last_week: int
    solved_last_month: int

class ContentProgressUpdate(BaseModel):
    progress: int = Field(..., ge=0, le=100)
    last_position: Optional[int] = Field(None, ge=0)
    time_spent: int = Field(0, ge=0, le=86400, description="Seconds spent since the last update")

class ContentProgressInfo(BaseModel):
    content_id: UUID
    progress: int = 0
    last_position: Optional[int] = None
    time_spent: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

class ContentProgressResult(ContentProgressInfo):
    xp_awarded: int = 0
    level_up: bool = False
    just_completed: bool = False
    achievements_unlocked: List[str] = []
