# ============================================================================
# Achievement System
# ============================================================================
from typing import Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import select, func, distinct
from uuid import UUID, uuid4
from datetime import datetime
import logging

from learnquest.core.database import insert_ignoring_conflicts
from learnquest.core.exceptions import PersistenceFailure
from learnquest.core.results import ServiceResult
from learnquest.core.timeutils import utcnow
from learnquest.models.user import User
from learnquest.models.achievement import Achievement, UserAchievement
from learnquest.models.content import Content, ContentProgress, ContentType
from learnquest.models.gamification import (
    XPAction, UserXP, UserStreak, UserDailyProgress, DailyGoal
)
from learnquest.models.practice import PracticeSubmission, SubmissionStatus
from learnquest.models.progress import LessonProgress, CourseEnrollment
from learnquest.schemas.gamification import (
    AchievementInfo, AchievementStats, AchievementCategoryStats
)
from learnquest.services.gamification.xp_system import XPSystem

logger = logging.getLogger(__name__)

class AchievementSystem:
    """
    Unlocks achievements whose condition is met by the learner's counters.

    A condition is stored as JSON on the achievement:

        {"type": "count", "metric": "lessons_completed", "target": 10}

    `count` and `complete` compare a metric against `target`, `first` needs
    the metric to be at least one, `streak` compares the current (metric
    "current") or longest streak, and `level` compares the stored level.
    Each achievement unlocks once and pays its `xp_reward` through the XP
    ledger keyed by the achievement id.
    """

    def __init__(self, db: AsyncSession, xp_system: Optional[XPSystem] = None):
        self.db = db
        self.xp_system = xp_system or XPSystem(db)

    async def check_achievements(self, user_id: Optional[UUID]) -> ServiceResult[List[AchievementInfo]]:
        """Unlock everything newly earned and commit"""
        if user_id is None:
            return ServiceResult.unauthorized()

        try:
            if await self.db.scalar(select(User.id).where(User.id == user_id)) is None:
                return ServiceResult.not_found("User")

            unlocked = await self.apply_checks(user_id)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Achievement check for {user_id} failed: {e}")
            raise PersistenceFailure() from e

        if any(a.xp_reward for a in unlocked):
            await self.xp_system.invalidate_cache(user_id)
        return ServiceResult.ok(unlocked)

    async def apply_checks(self, user_id: UUID) -> List[AchievementInfo]:
        """Unlock inside the caller's transaction (no commit)"""
        result = await self.db.execute(
            select(UserAchievement.achievement_id).where(UserAchievement.user_id == user_id)
        )
        unlocked_ids = set(result.scalars().all())

        result = await self.db.execute(
            select(Achievement)
            .where(Achievement.is_active.is_(True))
            .order_by(Achievement.category, Achievement.order_index)
        )

        newly_unlocked = []
        for achievement in result.scalars().all():
            if achievement.id in unlocked_ids:
                continue
            if not await self._condition_met(user_id, achievement.condition or {}):
                continue

            now = utcnow()
            inserted = await self.db.execute(
                insert_ignoring_conflicts(self.db, UserAchievement)
                .values(id=uuid4(), user_id=user_id, achievement_id=achievement.id, unlocked_at=now)
                .returning(UserAchievement.id)
            )
            if inserted.scalar_one_or_none() is None:
                # unlocked by a concurrent request
                continue

            if achievement.xp_reward > 0:
                await self.xp_system.apply_award(
                    user_id,
                    XPAction.ACHIEVEMENT_BONUS,
                    str(achievement.id),
                    f"Achievement unlocked: {achievement.name}",
                    amount=achievement.xp_reward,
                )

            logger.info(f"🏅 {user_id} unlocked {achievement.slug}")
            newly_unlocked.append(self._to_info(achievement, now))

        return newly_unlocked

    async def get_user_achievements(self, user_id: Optional[UUID]) -> ServiceResult[List[AchievementInfo]]:
        """Every visible achievement with its unlock state, plus unlocked secret ones"""
        if user_id is None:
            return ServiceResult.unauthorized()

        unlocked = await self._unlocked_at(user_id)
        result = await self.db.execute(
            select(Achievement)
            .where(Achievement.is_active.is_(True))
            .order_by(Achievement.category, Achievement.order_index)
        )

        return ServiceResult.ok([
            self._to_info(a, unlocked.get(a.id))
            for a in result.scalars().all()
            if not a.is_secret or a.id in unlocked
        ])

    async def get_achievement_stats(self, user_id: Optional[UUID]) -> ServiceResult[AchievementStats]:
        if user_id is None:
            return ServiceResult.unauthorized()

        unlocked = await self._unlocked_at(user_id)
        result = await self.db.execute(
            select(Achievement).where(Achievement.is_active.is_(True))
        )
        achievements = result.scalars().all()

        by_category: Dict[str, AchievementCategoryStats] = {}
        for a in achievements:
            if a.is_secret and a.id not in unlocked:
                continue
            stats = by_category.setdefault(
                a.category, AchievementCategoryStats(category=a.category, total=0, unlocked=0)
            )
            stats.total += 1
            if a.id in unlocked:
                stats.unlocked += 1

        return ServiceResult.ok(AchievementStats(
            total=sum(s.total for s in by_category.values()),
            unlocked=sum(s.unlocked for s in by_category.values()),
            xp_earned=sum(a.xp_reward for a in achievements if a.id in unlocked),
            by_category=sorted(by_category.values(), key=lambda s: s.category),
        ))

    async def _unlocked_at(self, user_id: UUID) -> Dict[UUID, datetime]:
        result = await self.db.execute(
            select(UserAchievement.achievement_id, UserAchievement.unlocked_at)
            .where(UserAchievement.user_id == user_id)
        )
        return {achievement_id: unlocked_at for achievement_id, unlocked_at in result.all()}

    async def _condition_met(self, user_id: UUID, condition: Dict) -> bool:
        kind = condition.get("type")
        metric = condition.get("metric", "")
        target = int(condition.get("target", 1))

        if kind in ("count", "complete"):
            return await self.metric_count(user_id, metric) >= target
        elif kind == "first":
            return await self.metric_count(user_id, metric) >= 1
        elif kind == "streak":
            column = UserStreak.current_streak if metric == "current" else UserStreak.longest_streak
            streak = await self.db.scalar(select(column).where(UserStreak.user_id == user_id))
            return (streak or 0) >= target
        elif kind == "level":
            level = await self.db.scalar(select(UserXP.level).where(UserXP.user_id == user_id))
            return (level or 1) >= target

        logger.warning(f"Unknown achievement condition type: {kind}")
        return False

    async def metric_count(self, user_id: UUID, metric: str) -> int:
        """Current value of a learner counter used by achievement conditions"""
        if metric == "lessons_completed":
            query = select(func.count(LessonProgress.id)).where(
                LessonProgress.user_id == user_id, LessonProgress.completed.is_(True)
            )
        elif metric == "courses_completed":
            query = select(func.count(CourseEnrollment.id)).where(
                CourseEnrollment.user_id == user_id, CourseEnrollment.completed_at.is_not(None)
            )
        elif metric == "problems_solved":
            query = select(func.count(distinct(PracticeSubmission.problem_id))).where(
                PracticeSubmission.user_id == user_id,
                PracticeSubmission.status == SubmissionStatus.PASSED,
            )
        elif metric == "content_completed":
            query = select(func.count(ContentProgress.id)).where(
                ContentProgress.user_id == user_id, ContentProgress.completed_at.is_not(None)
            )
        elif metric in ("articles_read", "tutorials_completed"):
            content_type = ContentType.ARTICLE if metric == "articles_read" else ContentType.TUTORIAL
            query = (
                select(func.count(ContentProgress.id))
                .join(Content, Content.id == ContentProgress.content_id)
                .where(
                    ContentProgress.user_id == user_id,
                    ContentProgress.completed_at.is_not(None),
                    Content.content_type == content_type,
                )
            )
        elif metric == "total_xp":
            query = select(UserXP.total_xp).where(UserXP.user_id == user_id)
        elif metric == "active_days":
            query = select(UserStreak.total_active_days).where(UserStreak.user_id == user_id)
        elif metric == "daily_goals_met":
            goal = await self.db.scalar(
                select(DailyGoal.daily_xp_goal).where(DailyGoal.user_id == user_id)
            )
            goal = goal or self.xp_system.settings.DEFAULT_DAILY_XP_GOAL
            query = select(func.count(UserDailyProgress.id)).where(
                UserDailyProgress.user_id == user_id, UserDailyProgress.xp_earned >= goal
            )
        else:
            logger.warning(f"Unknown achievement metric: {metric}")
            return 0

        return await self.db.scalar(query) or 0

    @staticmethod
    def _to_info(achievement: Achievement, unlocked_at: Optional[datetime] = None) -> AchievementInfo:
        return AchievementInfo(
            id=achievement.id,
            slug=achievement.slug,
            name=achievement.name,
            description=achievement.description,
            icon=achievement.icon,
            category=achievement.category,
            xp_reward=achievement.xp_reward,
            is_secret=bool(achievement.is_secret),
            is_unlocked=unlocked_at is not None,
            unlocked_at=unlocked_at,
        )
