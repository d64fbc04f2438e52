# ============================================================================
# API Dependencies
# ============================================================================
from typing import Optional
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from learnquest.core.database import get_db
from learnquest.core.redis import RedisCache
from learnquest.config import get_settings
from learnquest.services.gamification.xp_system import XPSystem
from learnquest.services.gamification.leaderboards import LeaderboardService
from learnquest.services.gamification.streaks import StreakTracker
from learnquest.services.gamification.achievements import AchievementSystem
from learnquest.services.progress.course_progress import CourseProgressService
from learnquest.services.progress.content_progress import ContentProgressService
from learnquest.services.practice.judge import JudgeClient
from learnquest.services.practice.submissions import SubmissionService
from learnquest.services.analytics.activity import ActivityAggregator
from learnquest.services.accounts import AccountDataService

logger = logging.getLogger(__name__)


# ============================================================================
# Shared Collaborators
# ============================================================================
async def get_cache(request: Request) -> Optional[RedisCache]:
    """
    Get the Redis cache from app state.

    The cache is optional: when Redis is disabled or was unreachable at
    startup the services run uncached.
    """
    return getattr(request.app.state, "cache", None)


async def get_judge(request: Request) -> Optional[JudgeClient]:
    """Get the code-execution client from app state, None when not configured."""
    return getattr(request.app.state, "judge", None)


# ============================================================================
# Service Dependencies
# ============================================================================
async def get_xp_system(
    db: AsyncSession = Depends(get_db),
    cache: Optional[RedisCache] = Depends(get_cache)
) -> XPSystem:
    return XPSystem(db, StreakTracker(db), cache, get_settings())


async def get_streak_tracker(db: AsyncSession = Depends(get_db)) -> StreakTracker:
    return StreakTracker(db)


async def get_leaderboard_service(db: AsyncSession = Depends(get_db)) -> LeaderboardService:
    return LeaderboardService(db, get_settings())


async def get_activity_aggregator(
    db: AsyncSession = Depends(get_db),
    cache: Optional[RedisCache] = Depends(get_cache)
) -> ActivityAggregator:
    return ActivityAggregator(db, cache, get_settings())


async def get_achievement_system(
    db: AsyncSession = Depends(get_db),
    xp_system: XPSystem = Depends(get_xp_system)
) -> AchievementSystem:
    return AchievementSystem(db, xp_system)


async def get_course_progress_service(
    db: AsyncSession = Depends(get_db),
    xp_system: XPSystem = Depends(get_xp_system),
    activity: ActivityAggregator = Depends(get_activity_aggregator),
    achievements: AchievementSystem = Depends(get_achievement_system)
) -> CourseProgressService:
    return CourseProgressService(db, xp_system, activity, achievements)


async def get_content_progress_service(
    db: AsyncSession = Depends(get_db),
    xp_system: XPSystem = Depends(get_xp_system),
    activity: ActivityAggregator = Depends(get_activity_aggregator),
    achievements: AchievementSystem = Depends(get_achievement_system)
) -> ContentProgressService:
    return ContentProgressService(db, xp_system, activity, achievements)


async def get_submission_service(
    db: AsyncSession = Depends(get_db),
    judge: Optional[JudgeClient] = Depends(get_judge),
    xp_system: XPSystem = Depends(get_xp_system),
    activity: ActivityAggregator = Depends(get_activity_aggregator),
    achievements: AchievementSystem = Depends(get_achievement_system)
) -> SubmissionService:
    return SubmissionService(db, judge, xp_system, activity, achievements)


async def get_account_service(
    db: AsyncSession = Depends(get_db),
    cache: Optional[RedisCache] = Depends(get_cache)
) -> AccountDataService:
    return AccountDataService(db, cache)
