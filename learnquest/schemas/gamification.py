# ============================================================================
# Gamification Schemas
# ============================================================================
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime
from uuid import UUID

class AwardResult(BaseModel):
    xp_awarded: int = 0
    bonus_xp: int = 0  # streak bonuses paid alongside the award
    level_up: bool = False
    new_total_xp: int = 0
    new_level: int = 1

    @classmethod
    def nothing(cls, total_xp: int = 0, level: int = 1) -> "AwardResult":
        return cls(xp_awarded=0, level_up=False, new_total_xp=total_xp, new_level=level)

class LevelInfo(BaseModel):
    level: int
    title: str
    total_xp: int
    level_start_xp: int
    next_level_xp: int
    xp_in_level: int
    xp_for_next_level: int
    xp_to_next_level: int
    progress_percent: float

class XPSummary(LevelInfo):
    weekly_xp: int = 0
    monthly_xp: int = 0

class XPTransactionItem(BaseModel):
    id: UUID
    action: str
    reference_id: str
    amount: int
    description: Optional[str] = None
    created_at: datetime

class XPHistory(BaseModel):
    transactions: List[XPTransactionItem]
    total: int

class StreakState(BaseModel):
    current_streak: int = 0
    longest_streak: int = 0
    last_active_date: Optional[date] = None
    total_active_days: int = 0
    changed: bool = False

class StreakInfo(BaseModel):
    current_streak: int
    longest_streak: int
    last_active_date: Optional[date] = None
    total_active_days: int
    is_active_today: bool
    status: str = Field(..., description="active, at_risk (no activity today yet), broken")

class LeaderboardEntry(BaseModel):
    rank: int
    user_id: UUID
    display_name: str
    avatar_url: Optional[str] = None
    xp: int
    level: int
    is_current_user: bool = False

class Leaderboard(BaseModel):
    period: str
    entries: List[LeaderboardEntry]
    current_user_rank: Optional[int] = None

class DailyProgress(BaseModel):
    date: date
    xp_earned: int = 0
    lessons_completed: int = 0
    problems_solved: int = 0
    content_completed: int = 0
    daily_xp_goal: int
    goal_met: bool = False

class DailyGoalUpdate(BaseModel):
    daily_xp_goal: Optional[int] = Field(None, gt=0, le=10000)
    reminder_enabled: Optional[bool] = None
    reminder_time: Optional[str] = Field(None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")

class AchievementInfo(BaseModel):
    id: UUID
    slug: str
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    category: str
    xp_reward: int
    is_secret: bool = False
    is_unlocked: bool = False
    unlocked_at: Optional[datetime] = None

class AchievementCategoryStats(BaseModel):
    category: str
    total: int
    unlocked: int

class AchievementStats(BaseModel):
    total: int
    unlocked: int
    xp_earned: int
    by_category: List[AchievementCategoryStats]
