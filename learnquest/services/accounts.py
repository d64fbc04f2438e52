# ============================================================================
# Account Data Removal
# ============================================================================
from typing import Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import delete, select
from uuid import UUID
import logging

from learnquest.core.exceptions import PersistenceFailure
from learnquest.core.redis import RedisCache
from learnquest.core.results import ServiceResult
from learnquest.models.user import User
from learnquest.models.activity import ActivityEvent
from learnquest.models.achievement import UserAchievement
from learnquest.models.content import ContentProgress
from learnquest.models.practice import PracticeSubmission
from learnquest.models.progress import LessonProgress, CourseEnrollment
from learnquest.models.gamification import (
    UserDailyProgress, DailyGoal, XPTransaction, UserXP, UserStreak
)

logger = logging.getLogger(__name__)

# Dependents first, the user row last
DELETION_ORDER = [
    ("activity_events", ActivityEvent),
    ("user_achievements", UserAchievement),
    ("content_progress", ContentProgress),
    ("practice_submissions", PracticeSubmission),
    ("lesson_progress", LessonProgress),
    ("course_enrollments", CourseEnrollment),
    ("user_daily_progress", UserDailyProgress),
    ("daily_goals", DailyGoal),
    ("xp_transactions", XPTransaction),
    ("user_xp", UserXP),
    ("user_streaks", UserStreak),
]

class AccountDataService:
    def __init__(self, db: AsyncSession, cache: Optional[RedisCache] = None):
        self.db = db
        self.cache = cache

    async def delete_account_data(self, user_id: Optional[UUID]) -> ServiceResult[Dict[str, int]]:
        """Delete everything a user owns, then the user, in one transaction"""
        if user_id is None:
            return ServiceResult.unauthorized()

        if await self.db.scalar(select(User.id).where(User.id == user_id)) is None:
            return ServiceResult.not_found("User")

        counts = {}
        try:
            for name, model in DELETION_ORDER:
                result = await self.db.execute(
                    delete(model)
                    .where(model.user_id == user_id)
                    .execution_options(synchronize_session=False)
                )
                counts[name] = result.rowcount

            result = await self.db.execute(
                delete(User).where(User.id == user_id).execution_options(synchronize_session=False)
            )
            counts["users"] = result.rowcount
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Deleting account data for {user_id} failed: {e}")
            raise PersistenceFailure() from e

        if self.cache is not None:
            await self.cache.delete(self.cache.key("xp_summary", user_id))
            await self.cache.delete_matching(self.cache.key("activity", user_id, "*"))

        logger.info(f"🗑️ Deleted account data for {user_id}: {counts}")
        return ServiceResult.ok(counts)
