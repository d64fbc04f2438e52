# ============================================================================
# Gamification Endpoints
# ============================================================================
from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from uuid import UUID

from learnquest.api.deps import (
    get_xp_system, get_streak_tracker, get_leaderboard_service, get_achievement_system
)
from learnquest.core.security import get_current_user_id
from learnquest.schemas.gamification import (
    AwardResult, XPSummary, XPHistory, Leaderboard, StreakInfo, DailyProgress, DailyGoalUpdate,
    AchievementInfo, AchievementStats
)
from learnquest.services.gamification.xp_system import XPSystem
from learnquest.services.gamification.streaks import StreakTracker
from learnquest.services.gamification.achievements import AchievementSystem
from learnquest.services.gamification.leaderboards import LeaderboardService, LeaderboardPeriod

router = APIRouter(tags=["gamification"])

@router.get("/xp", response_model=XPSummary)
async def get_my_xp(
    user_id: Optional[UUID] = Depends(get_current_user_id),
    xp_system: XPSystem = Depends(get_xp_system)
):
    """Get current XP, level and progress to the next level"""
    return (await xp_system.get_xp_summary(user_id)).unwrap()

@router.get("/xp/history", response_model=XPHistory)
async def get_xp_history(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user_id: Optional[UUID] = Depends(get_current_user_id),
    xp_system: XPSystem = Depends(get_xp_system)
):
    return (await xp_system.get_xp_history(user_id, limit, offset)).unwrap()

@router.get("/xp/leaderboard", response_model=Leaderboard)
async def get_leaderboard(
    period: LeaderboardPeriod = LeaderboardPeriod.WEEKLY,
    limit: int = Query(20, ge=1),
    user_id: Optional[UUID] = Depends(get_current_user_id),
    leaderboards: LeaderboardService = Depends(get_leaderboard_service)
):
    """Leaderboards are public; the caller's rank is included when signed in"""
    return (await leaderboards.get_leaderboard(period, limit, user_id)).unwrap()

@router.post("/xp/daily-login", response_model=AwardResult)
async def claim_daily_login(
    user_id: Optional[UUID] = Depends(get_current_user_id),
    xp_system: XPSystem = Depends(get_xp_system)
):
    return (await xp_system.claim_daily_login(user_id)).unwrap()

@router.get("/streak", response_model=StreakInfo)
async def get_my_streak(
    user_id: Optional[UUID] = Depends(get_current_user_id),
    streaks: StreakTracker = Depends(get_streak_tracker)
):
    return (await streaks.get_streak(user_id)).unwrap()

@router.get("/daily-progress", response_model=DailyProgress)
async def get_daily_progress(
    user_id: Optional[UUID] = Depends(get_current_user_id),
    xp_system: XPSystem = Depends(get_xp_system)
):
    return (await xp_system.get_daily_progress(user_id)).unwrap()

@router.put("/daily-goal", response_model=DailyGoalUpdate)
async def update_daily_goal(
    changes: DailyGoalUpdate,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    xp_system: XPSystem = Depends(get_xp_system)
):
    return (await xp_system.update_daily_goal(user_id, changes)).unwrap()

@router.get("/achievements", response_model=List[AchievementInfo])
async def get_my_achievements(
    user_id: Optional[UUID] = Depends(get_current_user_id),
    achievements: AchievementSystem = Depends(get_achievement_system)
):
    """Visible achievements with unlock state; secret ones appear once unlocked"""
    return (await achievements.get_user_achievements(user_id)).unwrap()

@router.get("/achievements/stats", response_model=AchievementStats)
async def get_achievement_stats(
    user_id: Optional[UUID] = Depends(get_current_user_id),
    achievements: AchievementSystem = Depends(get_achievement_system)
):
    return (await achievements.get_achievement_stats(user_id)).unwrap()

@router.post("/achievements/check", response_model=List[AchievementInfo])
async def check_achievements(
    user_id: Optional[UUID] = Depends(get_current_user_id),
    achievements: AchievementSystem = Depends(get_achievement_system)
):
    """Unlock anything already earned; returns only the new unlocks"""
    return (await achievements.check_achievements(user_id)).unwrap()
