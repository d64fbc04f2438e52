# ============================================================================
# Leaderboard System
# ============================================================================
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, desc
from uuid import UUID
from enum import Enum

from learnquest.config import Settings, get_settings
from learnquest.core.results import ErrorCode, ServiceResult
from learnquest.models.user import User
from learnquest.models.gamification import UserXP
from learnquest.schemas.gamification import Leaderboard, LeaderboardEntry

class LeaderboardPeriod(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ALL_TIME = "all_time"

class LeaderboardService:
    """Manages XP leaderboards and rankings"""

    PERIOD_COLUMNS = {
        LeaderboardPeriod.WEEKLY: UserXP.weekly_xp,
        LeaderboardPeriod.MONTHLY: UserXP.monthly_xp,
        LeaderboardPeriod.ALL_TIME: UserXP.total_xp,
    }

    def __init__(self, db: AsyncSession, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()

    async def get_leaderboard(
        self,
        period: str = LeaderboardPeriod.WEEKLY,
        limit: int = 20,
        current_user_id: Optional[UUID] = None,
    ) -> ServiceResult[Leaderboard]:
        """Get leaderboard entries for a period"""
        try:
            period = LeaderboardPeriod(period)
        except ValueError:
            return ServiceResult.fail(ErrorCode.INVALID_INPUT, f"Unknown leaderboard period: {period}")

        if limit < 1:
            return ServiceResult.fail(ErrorCode.INVALID_INPUT, "limit must be positive")
        limit = min(limit, self.settings.LEADERBOARD_MAX_LIMIT)

        xp_column = self.PERIOD_COLUMNS[period]
        query = (
            select(User.id, User.display_name, User.avatar_url, xp_column.label("xp"), UserXP.level)
            .join(UserXP, User.id == UserXP.user_id)
            .where(User.is_active.is_(True), xp_column > 0)
            .order_by(desc(xp_column), User.id)
            .limit(limit)
        )
        result = await self.db.execute(query)

        entries = []
        current_user_rank = None
        rank = 0
        previous_xp = None
        for position, row in enumerate(result.all(), 1):
            # tied users share a rank
            if row.xp != previous_xp:
                rank = position
                previous_xp = row.xp
            is_current = current_user_id is not None and row.id == current_user_id
            if is_current:
                current_user_rank = rank
            entries.append(LeaderboardEntry(
                rank=rank,
                user_id=row.id,
                display_name=row.display_name,
                avatar_url=row.avatar_url,
                xp=row.xp,
                level=row.level,
                is_current_user=is_current,
            ))

        if current_user_id is not None and current_user_rank is None:
            current_user_rank = await self.get_user_rank(current_user_id, period)

        return ServiceResult.ok(Leaderboard(
            period=period.value,
            entries=entries,
            current_user_rank=current_user_rank,
        ))

    async def get_user_rank(self, user_id: UUID, period: LeaderboardPeriod) -> Optional[int]:
        """Rank is 1 + the number of users with strictly more XP"""
        xp_column = self.PERIOD_COLUMNS[period]
        user_xp = await self.db.scalar(select(xp_column).where(UserXP.user_id == user_id))
        if not user_xp:
            return None

        ahead = await self.db.scalar(
            select(func.count(UserXP.id))
            .join(User, User.id == UserXP.user_id)
            .where(User.is_active.is_(True), xp_column > user_xp)
        )
        return (ahead or 0) + 1
