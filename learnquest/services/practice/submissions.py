# ============================================================================
# Practice Submissions
# ============================================================================
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import Integer, select, func, distinct
from uuid import UUID
from datetime import timedelta
import logging

from learnquest.core.exceptions import PersistenceFailure, JudgeUnavailable
from learnquest.core.results import ErrorCode, ServiceResult
from learnquest.core.timeutils import utcnow
from learnquest.models.user import User
from learnquest.models.practice import (
    PracticeProblem, PracticeSubmission, Difficulty, SubmissionStatus, ProblemState
)
from learnquest.models.gamification import XPAction
from learnquest.models.activity import ActivityEventType
from learnquest.schemas.progress import (
    SubmissionResult, SubmissionItem, ProblemStatus, PracticeStats, DifficultyBreakdown
)
from learnquest.services.gamification.xp_system import XPSystem
from learnquest.services.gamification.achievements import AchievementSystem
from learnquest.services.analytics.activity import ActivityAggregator
from learnquest.services.practice.judge import JudgeClient

logger = logging.getLogger(__name__)

DIFFICULTY_ACTIONS = {
    Difficulty.EASY: XPAction.SOLVE_PROBLEM_EASY,
    Difficulty.MEDIUM: XPAction.SOLVE_PROBLEM_MEDIUM,
    Difficulty.HARD: XPAction.SOLVE_PROBLEM_HARD,
}

MAX_CODE_LENGTH = 100_000

class SubmissionService:
    """Grades practice submissions and pays XP for the first pass"""

    def __init__(
        self,
        db: AsyncSession,
        judge: Optional[JudgeClient],
        xp_system: Optional[XPSystem] = None,
        activity: Optional[ActivityAggregator] = None,
        achievements: Optional[AchievementSystem] = None,
    ):
        self.db = db
        self.judge = judge
        self.xp_system = xp_system or XPSystem(db)
        self.activity = activity or ActivityAggregator(db)
        self.achievements = achievements or AchievementSystem(db, self.xp_system)

    async def submit_solution(
        self,
        user_id: Optional[UUID],
        problem_id: UUID,
        code: str,
    ) -> ServiceResult[SubmissionResult]:
        """Judge and record a submission"""
        if user_id is None:
            return ServiceResult.unauthorized()

        if await self.db.scalar(select(User.id).where(User.id == user_id)) is None:
            return ServiceResult.not_found("User")

        problem = await self.db.get(PracticeProblem, problem_id)
        if problem is None or not problem.is_published:
            return ServiceResult.not_found("Problem")

        if not code or not code.strip():
            return ServiceResult.fail(ErrorCode.INVALID_INPUT, "Code must not be empty")
        if len(code) > MAX_CODE_LENGTH:
            return ServiceResult.fail(ErrorCode.INVALID_INPUT, "Code is too long")

        if self.judge is None:
            raise JudgeUnavailable("Code execution service not configured")

        # judge failures propagate before anything is written
        verdict = await self.judge.judge(problem, code)
        solved = verdict.status == SubmissionStatus.PASSED

        try:
            submission = PracticeSubmission(
                user_id=user_id,
                problem_id=problem.id,
                code=code,
                status=verdict.status,
                passed_tests=verdict.passed_tests,
                total_tests=verdict.total_tests,
                submitted_at=utcnow(),
            )
            self.db.add(submission)
            await self.db.flush()

            xp_awarded = 0
            level_up = False
            first_solve = False
            unlocked = []
            if solved:
                award = await self.xp_system.apply_award(
                    user_id,
                    DIFFICULTY_ACTIONS[problem.difficulty],
                    str(problem.id),
                    f"Solved {problem.title}",
                )
                first_solve = award.xp_awarded > 0
                xp_awarded = award.xp_awarded + award.bonus_xp
                level_up = award.level_up
                if first_solve:
                    unlocked = await self.achievements.apply_checks(user_id)

            self.activity.apply_event(
                user_id,
                ActivityEventType.SOLUTION_SUBMITTED,
                target_id=problem.id,
                occurred_at=submission.submitted_at,
                details={"status": verdict.status.value},
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Recording submission for {problem_id} by {user_id} failed: {e}")
            raise PersistenceFailure() from e

        if xp_awarded or unlocked:
            await self.xp_system.invalidate_cache(user_id)
        if first_solve:
            logger.info(f"🧩 {user_id} solved {problem.slug} for the first time (+{xp_awarded} XP)")
        await self.activity.invalidate_year(user_id, submission.submitted_at.year)

        return ServiceResult.ok(SubmissionResult(
            submission_id=submission.id,
            status=verdict.status,
            passed_tests=verdict.passed_tests,
            total_tests=verdict.total_tests,
            message=verdict.message,
            xp_awarded=xp_awarded,
            level_up=level_up,
            solved=solved,
            first_solve=first_solve,
            achievements_unlocked=[a.slug for a in unlocked],
        ))

    async def get_problem_state(self, user_id: Optional[UUID], problem_id: UUID) -> ServiceResult[ProblemStatus]:
        if user_id is None:
            return ServiceResult.unauthorized()

        if await self.db.get(PracticeProblem, problem_id) is None:
            return ServiceResult.not_found("Problem")

        result = await self.db.execute(
            select(
                func.count(PracticeSubmission.id).label("attempts"),
                func.sum((PracticeSubmission.status == SubmissionStatus.PASSED).cast(Integer)).label("passed")
            )
            .where(
                PracticeSubmission.user_id == user_id,
                PracticeSubmission.problem_id == problem_id,
            )
        )
        row = result.one()
        attempts = row.attempts or 0

        if row.passed:
            state = ProblemState.SOLVED
        elif attempts:
            state = ProblemState.ATTEMPTED
        else:
            state = ProblemState.UNATTEMPTED

        return ServiceResult.ok(ProblemStatus(problem_id=problem_id, state=state, attempts=attempts))

    async def list_submissions(
        self, user_id: Optional[UUID], problem_id: UUID, limit: int = 20
    ) -> ServiceResult[List[SubmissionItem]]:
        """Most recent submissions first"""
        if user_id is None:
            return ServiceResult.unauthorized()
        if limit < 1 or limit > 100:
            return ServiceResult.fail(ErrorCode.INVALID_INPUT, "limit must be between 1 and 100")

        result = await self.db.execute(
            select(PracticeSubmission)
            .where(
                PracticeSubmission.user_id == user_id,
                PracticeSubmission.problem_id == problem_id,
            )
            .order_by(PracticeSubmission.submitted_at.desc())
            .limit(limit)
        )
        return ServiceResult.ok([
            SubmissionItem(
                id=s.id,
                status=s.status,
                passed_tests=s.passed_tests,
                total_tests=s.total_tests,
                submitted_at=s.submitted_at,
            )
            for s in result.scalars().all()
        ])

    async def get_practice_stats(self, user_id: Optional[UUID]) -> ServiceResult[PracticeStats]:
        if user_id is None:
            return ServiceResult.unauthorized()

        # Published problems per difficulty
        result = await self.db.execute(
            select(PracticeProblem.difficulty, func.count(PracticeProblem.id))
            .where(PracticeProblem.is_published.is_(True))
            .group_by(PracticeProblem.difficulty)
        )
        by_difficulty = {d.value: DifficultyBreakdown() for d in Difficulty}
        for difficulty, count in result.all():
            by_difficulty[difficulty.value].total = count

        # Distinct solved problems per difficulty
        result = await self.db.execute(
            select(PracticeProblem.difficulty, func.count(distinct(PracticeSubmission.problem_id)))
            .join(PracticeProblem, PracticeProblem.id == PracticeSubmission.problem_id)
            .where(
                PracticeSubmission.user_id == user_id,
                PracticeSubmission.status == SubmissionStatus.PASSED,
            )
            .group_by(PracticeProblem.difficulty)
        )
        for difficulty, count in result.all():
            by_difficulty[difficulty.value].solved = count

        result = await self.db.execute(
            select(
                func.count(PracticeSubmission.id).label("total"),
                func.sum((PracticeSubmission.status == SubmissionStatus.PASSED).cast(Integer)).label("passed")
            )
            .where(PracticeSubmission.user_id == user_id)
        )
        row = result.one()
        total_submissions = row.total or 0
        passed_submissions = row.passed or 0

        now = utcnow()
        solved_last_week = await self._solved_since(user_id, now - timedelta(days=7))
        solved_last_month = await self._solved_since(user_id, now - timedelta(days=30))

        return ServiceResult.ok(PracticeStats(
            total_problems=sum(b.total for b in by_difficulty.values()),
            solved_problems=sum(b.solved for b in by_difficulty.values()),
            total_submissions=total_submissions,
            success_rate=round(passed_submissions / total_submissions * 100) if total_submissions else 0,
            by_difficulty=by_difficulty,
            solved_last_week=solved_last_week,
            solved_last_month=solved_last_month,
        ))

    async def _solved_since(self, user_id: UUID, since) -> int:
        count = await self.db.scalar(
            select(func.count(distinct(PracticeSubmission.problem_id)))
            .where(
                PracticeSubmission.user_id == user_id,
                PracticeSubmission.status == SubmissionStatus.PASSED,
                PracticeSubmission.submitted_at >= since,
            )
        )
        return count or 0
