# ============================================================================
# Course Progress & Lesson Completion
# ============================================================================
"""
Lesson -> section -> course completion cascade.

Completing a lesson, updating the enrollment, recording the activity event and
every XP award it triggers happen in a single transaction. Completion is
one-way, so repeating a completion changes nothing and awards nothing.
"""
from typing import List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import select, update
from uuid import UUID, uuid4
import logging

from learnquest.core.database import insert_ignoring_conflicts
from learnquest.core.exceptions import PersistenceFailure
from learnquest.core.results import ErrorCode, ServiceResult
from learnquest.core.timeutils import utcnow
from learnquest.models.user import User
from learnquest.models.course import Course, CourseSection, Lesson
from learnquest.models.gamification import XPAction
from learnquest.models.progress import LessonProgress, CourseEnrollment
from learnquest.models.activity import ActivityEventType
from learnquest.schemas.progress import EnrollmentInfo, LessonCompletionResult
from learnquest.services.gamification.xp_system import XPSystem
from learnquest.services.gamification.achievements import AchievementSystem
from learnquest.services.analytics.activity import ActivityAggregator

logger = logging.getLogger(__name__)

def course_progress_percent(completed: int, total: int) -> int:
    """
    Percentage of completed lessons, rounded half up. Stays below 100 until
    every lesson is done so 100 always means "course completed".
    """
    if total <= 0:
        return 0
    completed = min(max(completed, 0), total)
    percent = (200 * completed + total) // (2 * total)
    if completed < total:
        return min(percent, 99)
    return 100

class CourseProgressService:
    """Enrollment and lesson completion for a user"""

    def __init__(
        self,
        db: AsyncSession,
        xp_system: Optional[XPSystem] = None,
        activity: Optional[ActivityAggregator] = None,
        achievements: Optional[AchievementSystem] = None,
    ):
        self.db = db
        self.xp_system = xp_system or XPSystem(db)
        self.activity = activity or ActivityAggregator(db)
        self.achievements = achievements or AchievementSystem(db, self.xp_system)

    async def enroll(self, user_id: Optional[UUID], course_id: UUID) -> ServiceResult[EnrollmentInfo]:
        """Enroll in a course; enrolling twice returns the existing enrollment"""
        if user_id is None:
            return ServiceResult.unauthorized()
        if not await self._user_exists(user_id):
            return ServiceResult.not_found("User")

        course = await self.db.get(Course, course_id)
        if course is None or not course.is_published:
            return ServiceResult.not_found("Course")

        lessons = await self._ordered_lessons(course_id)
        first_lesson_id = lessons[0][0] if lessons else None

        try:
            await self.db.execute(
                insert_ignoring_conflicts(self.db, CourseEnrollment).values(
                    id=uuid4(),
                    user_id=user_id,
                    course_id=course_id,
                    progress=0,
                    current_lesson_id=first_lesson_id,
                    enrolled_at=utcnow(),
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Enrollment of {user_id} in {course_id} failed: {e}")
            raise PersistenceFailure() from e

        enrollment = await self._get_enrollment(user_id, course_id)
        logger.info(f"📚 {user_id} enrolled in {course.slug}")
        return ServiceResult.ok(self._to_info(enrollment, course.title))

    async def complete_lesson(
        self,
        user_id: Optional[UUID],
        course_id: UUID,
        lesson_id: UUID,
    ) -> ServiceResult[LessonCompletionResult]:
        """Mark a lesson complete and cascade to section and course"""
        if user_id is None:
            return ServiceResult.unauthorized()
        if not await self._user_exists(user_id):
            return ServiceResult.not_found("User")

        course = await self.db.get(Course, course_id)
        if course is None:
            return ServiceResult.not_found("Course")

        result = await self.db.execute(
            select(Lesson.id, Lesson.section_id)
            .join(CourseSection, Lesson.section_id == CourseSection.id)
            .where(Lesson.id == lesson_id, CourseSection.course_id == course_id)
        )
        lesson = result.one_or_none()
        if lesson is None:
            return ServiceResult.not_found("Lesson")

        # the enrollment row lock serializes completions within one course
        enrollment = await self._get_enrollment(user_id, course_id, for_update=True)
        if enrollment is None:
            await self.db.rollback()
            return ServiceResult.fail(ErrorCode.NOT_ENROLLED, "Not enrolled in this course")

        try:
            completion = await self._apply_completion(user_id, course_id, lesson.id, lesson.section_id, enrollment)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Completing lesson {lesson_id} for {user_id} failed: {e}")
            raise PersistenceFailure() from e

        if completion.already_completed:
            return ServiceResult.ok(completion, message="Lesson already completed")

        if completion.xp_awarded or completion.achievements_unlocked:
            await self.xp_system.invalidate_cache(user_id)
        await self.activity.invalidate_year(user_id, utcnow().year)
        return ServiceResult.ok(completion)

    async def _apply_completion(
        self,
        user_id: UUID,
        course_id: UUID,
        lesson_id: UUID,
        section_id: UUID,
        enrollment: CourseEnrollment,
    ) -> LessonCompletionResult:
        now = utcnow()

        await self.db.execute(
            insert_ignoring_conflicts(self.db, LessonProgress).values(
                id=uuid4(),
                user_id=user_id,
                lesson_id=lesson_id,
                completed=False,
                started_at=now,
            )
        )

        # false -> true exactly once; a concurrent duplicate sees rowcount 0
        result = await self.db.execute(
            update(LessonProgress)
            .where(
                LessonProgress.user_id == user_id,
                LessonProgress.lesson_id == lesson_id,
                LessonProgress.completed.is_(False),
            )
            .values(completed=True, completed_at=now)
            .execution_options(synchronize_session=False)
        )

        lessons = await self._ordered_lessons(course_id)
        completed_ids = await self._completed_lesson_ids(user_id, [lid for lid, _ in lessons])
        next_lesson_id = next((lid for lid, _ in lessons if lid not in completed_ids), None)

        if result.rowcount != 1:
            return LessonCompletionResult(
                progress=enrollment.progress,
                already_completed=True,
                current_lesson_id=enrollment.current_lesson_id,
                next_lesson_id=next_lesson_id,
            )

        total = len(lessons)
        completed = len(completed_ids)
        progress = course_progress_percent(completed, total)

        section_lessons = [lid for lid, sid in lessons if sid == section_id]
        section_completed = all(lid in completed_ids for lid in section_lessons)
        course_completed = total > 0 and completed == total

        awards = [(XPAction.COMPLETE_LESSON, lesson_id)]
        if section_completed:
            awards.append((XPAction.COMPLETE_SECTION, section_id))
        if course_completed:
            awards.append((XPAction.COMPLETE_COURSE, course_id))

        xp_awarded = 0
        level_up = False
        for action, reference in awards:
            award = await self.xp_system.apply_award(user_id, action, str(reference))
            xp_awarded += award.xp_awarded + award.bonus_xp
            level_up = level_up or award.level_up

        values = {"progress": progress, "current_lesson_id": lesson_id}
        if course_completed and enrollment.completed_at is None:
            values["completed_at"] = now
        await self.db.execute(
            update(CourseEnrollment)
            .where(CourseEnrollment.id == enrollment.id)
            .values(values)
            .execution_options(synchronize_session=False)
        )

        self.activity.apply_event(
            user_id,
            ActivityEventType.LESSON_COMPLETED,
            target_id=lesson_id,
            occurred_at=now,
            details={"course_id": str(course_id), "progress": progress},
        )
        unlocked = await self.achievements.apply_checks(user_id)

        logger.info(f"✅ {user_id} completed lesson {lesson_id} ({progress}% of course {course_id})")
        if course_completed:
            logger.info(f"🏆 {user_id} completed course {course_id}")

        return LessonCompletionResult(
            progress=progress,
            xp_awarded=xp_awarded,
            level_up=level_up,
            section_completed=section_completed,
            course_completed=course_completed,
            current_lesson_id=lesson_id,
            next_lesson_id=next_lesson_id,
            achievements_unlocked=[a.slug for a in unlocked],
        )

    async def get_course_progress(self, user_id: Optional[UUID], course_id: UUID) -> ServiceResult[EnrollmentInfo]:
        if user_id is None:
            return ServiceResult.unauthorized()

        course = await self.db.get(Course, course_id)
        if course is None:
            return ServiceResult.not_found("Course")

        enrollment = await self._get_enrollment(user_id, course_id)
        if enrollment is None:
            return ServiceResult.fail(ErrorCode.NOT_ENROLLED, "Not enrolled in this course")

        lessons = await self._ordered_lessons(course_id)
        completed_ids = await self._completed_lesson_ids(user_id, [lid for lid, _ in lessons])

        info = self._to_info(enrollment, course.title)
        info.completed_lessons = len(completed_ids)
        info.total_lessons = len(lessons)
        return ServiceResult.ok(info)

    async def list_enrollments(self, user_id: Optional[UUID]) -> ServiceResult[List[EnrollmentInfo]]:
        if user_id is None:
            return ServiceResult.unauthorized()

        result = await self.db.execute(
            select(CourseEnrollment, Course.title)
            .join(Course, Course.id == CourseEnrollment.course_id)
            .where(CourseEnrollment.user_id == user_id)
            .order_by(CourseEnrollment.enrolled_at.desc())
        )
        return ServiceResult.ok([
            self._to_info(enrollment, title) for enrollment, title in result.all()
        ])

    async def _user_exists(self, user_id: UUID) -> bool:
        return await self.db.scalar(select(User.id).where(User.id == user_id)) is not None

    async def _get_enrollment(
        self, user_id: UUID, course_id: UUID, for_update: bool = False
    ) -> Optional[CourseEnrollment]:
        query = (
            select(CourseEnrollment)
            .where(
                CourseEnrollment.user_id == user_id,
                CourseEnrollment.course_id == course_id,
            )
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def _ordered_lessons(self, course_id: UUID) -> List[Tuple[UUID, UUID]]:
        """(lesson_id, section_id) pairs in course order"""
        result = await self.db.execute(
            select(Lesson.id, Lesson.section_id)
            .join(CourseSection, Lesson.section_id == CourseSection.id)
            .where(CourseSection.course_id == course_id)
            .order_by(CourseSection.order_index, Lesson.order_index, Lesson.id)
        )
        return [(row.id, row.section_id) for row in result.all()]

    async def _completed_lesson_ids(self, user_id: UUID, lesson_ids: List[UUID]) -> set:
        if not lesson_ids:
            return set()
        result = await self.db.execute(
            select(LessonProgress.lesson_id).where(
                LessonProgress.user_id == user_id,
                LessonProgress.lesson_id.in_(lesson_ids),
                LessonProgress.completed.is_(True),
            )
        )
        return set(result.scalars().all())

    @staticmethod
    def _to_info(enrollment: CourseEnrollment, course_title: Optional[str] = None) -> EnrollmentInfo:
        return EnrollmentInfo(
            id=enrollment.id,
            course_id=enrollment.course_id,
            progress=enrollment.progress,
            current_lesson_id=enrollment.current_lesson_id,
            enrolled_at=enrollment.enrolled_at,
            completed_at=enrollment.completed_at,
            course_title=course_title,
        )
