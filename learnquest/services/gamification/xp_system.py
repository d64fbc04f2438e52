# ============================================================================
# XP & Leveling System
# ============================================================================
from datetime import date
from typing import List, Optional
from uuid import UUID, uuid4
import logging

from sqlalchemy import select, update, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from learnquest.config import Settings, get_settings
from learnquest.core.database import insert_ignoring_conflicts
from learnquest.core.exceptions import PersistenceFailure
from learnquest.core.redis import RedisCache
from learnquest.core.results import ErrorCode, ServiceResult
from learnquest.core.timeutils import utcnow
from learnquest.models.user import User
from learnquest.models.gamification import (
    XPAction, UserXP, XPTransaction, UserDailyProgress, DailyGoal
)
from learnquest.schemas.gamification import (
    AwardResult, XPSummary, XPHistory, XPTransactionItem, DailyProgress, DailyGoalUpdate,
    StreakState
)
from learnquest.services.gamification.levels import LevelCurve
from learnquest.services.gamification.streaks import StreakTracker

logger = logging.getLogger(__name__)

WEEKLY_STREAK_DAYS = 7

class XPSystem:
    """Manages XP awards and leveling. Sole writer of the XP ledger."""

    # XP values for different actions
    XP_VALUES = {
        # Content
        XPAction.READ_CONTENT: 5,
        XPAction.COMPLETE_CONTENT: 15,
        XPAction.LIKE_CONTENT: 2,
        XPAction.COMMENT: 5,

        # Courses
        XPAction.COMPLETE_LESSON: 10,
        XPAction.COMPLETE_SECTION: 25,
        XPAction.COMPLETE_COURSE: 100,

        # Practice problems by difficulty
        XPAction.SOLVE_PROBLEM_EASY: 10,
        XPAction.SOLVE_PROBLEM_MEDIUM: 25,
        XPAction.SOLVE_PROBLEM_HARD: 50,

        # Habits
        XPAction.DAILY_LOGIN: 5,
        XPAction.DAILY_STREAK_BONUS: 10,
        XPAction.WEEKLY_STREAK_BONUS: 50,

        # Special
        XPAction.FIRST_OF_TYPE: 20,
        XPAction.ACHIEVEMENT_BONUS: 25,
    }

    # Which per-day counter an action bumps besides xp_earned
    DAILY_COUNTERS = {
        XPAction.COMPLETE_LESSON: "lessons_completed",
        XPAction.SOLVE_PROBLEM_EASY: "problems_solved",
        XPAction.SOLVE_PROBLEM_MEDIUM: "problems_solved",
        XPAction.SOLVE_PROBLEM_HARD: "problems_solved",
        XPAction.COMPLETE_CONTENT: "content_completed",
    }

    def __init__(
        self,
        db: AsyncSession,
        streaks: Optional[StreakTracker] = None,
        cache: Optional[RedisCache] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.levels = LevelCurve(self.settings.LEVEL_BASE_XP)
        self.streaks = streaks or StreakTracker(db)
        self.cache = cache

    @staticmethod
    def resolve_action(action) -> Optional[XPAction]:
        try:
            return XPAction(action)
        except ValueError:
            return None

    async def award_xp(
        self,
        user_id: Optional[UUID],
        action,
        reference_id,
        description: Optional[str] = None,
    ) -> ServiceResult[AwardResult]:
        """Award XP once per (user, action, reference) and commit"""
        if user_id is None:
            return ServiceResult.unauthorized(AwardResult.nothing())

        xp_action = self.resolve_action(action)
        if xp_action is None:
            return ServiceResult.fail(
                ErrorCode.INVALID_INPUT, f"Unknown XP action: {action}", AwardResult.nothing()
            )

        reference = str(reference_id).strip() if reference_id is not None else ""
        if not reference or len(reference) > 120:
            return ServiceResult.fail(
                ErrorCode.INVALID_INPUT, "A reference id (1-120 chars) is required", AwardResult.nothing()
            )

        try:
            if await self.db.scalar(select(User.id).where(User.id == user_id)) is None:
                return ServiceResult.not_found("User", AwardResult.nothing())

            award = await self.apply_award(user_id, xp_action, reference, description)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"XP award {xp_action.value} for {user_id} failed: {e}")
            raise PersistenceFailure() from e

        if award.xp_awarded:
            await self.invalidate_cache(user_id)
            return ServiceResult.ok(award)
        return ServiceResult.ok(award, message="XP already awarded for this action")

    async def apply_award(
        self,
        user_id: UUID,
        action: XPAction,
        reference_id: str,
        description: Optional[str] = None,
        amount: Optional[int] = None,
    ) -> AwardResult:
        """
        Award inside the caller's transaction (no commit).

        The transaction row is written with a conditional insert: when the
        (user, action, reference) row already exists nothing else happens and
        a zero award is returned. `amount` overrides the table value for
        rewards priced elsewhere (achievements).

        The first award of a day that extends a streak also pays the streak
        bonuses, reported separately as `bonus_xp`.
        """
        amount = amount if amount is not None else self.XP_VALUES[action]
        now = utcnow()

        result = await self.db.execute(
            insert_ignoring_conflicts(self.db, XPTransaction)
            .values(
                id=uuid4(),
                user_id=user_id,
                action=action,
                reference_id=reference_id,
                amount=amount,
                description=description or f"Earned {amount} XP for {action.value.lower().replace('_', ' ')}",
                created_at=now,
            )
            .returning(XPTransaction.id)
        )
        if result.scalar_one_or_none() is None:
            total_xp, level = await self._current_totals(user_id)
            return AwardResult.nothing(total_xp, level)

        # Ledger row is created lazily on the first award
        await self.db.execute(
            insert_ignoring_conflicts(self.db, UserXP).values(
                id=uuid4(),
                user_id=user_id,
                total_xp=0,
                weekly_xp=0,
                monthly_xp=0,
                level=1,
                week_starts_at=now,
                month_starts_at=now,
                updated_at=now,
            )
        )

        result = await self.db.execute(
            update(UserXP)
            .where(UserXP.user_id == user_id)
            .values(
                total_xp=UserXP.total_xp + amount,
                weekly_xp=UserXP.weekly_xp + amount,
                monthly_xp=UserXP.monthly_xp + amount,
                updated_at=now,
            )
            .returning(UserXP.total_xp, UserXP.level)
            .execution_options(synchronize_session=False)
        )
        new_total, stored_level = result.one()
        old_total = new_total - amount

        new_level = self.levels.level_for(new_total)
        level_up = self.levels.is_level_up(old_total, new_total)

        if new_level > stored_level:
            # only ever raise the stored level
            await self.db.execute(
                update(UserXP)
                .where(UserXP.user_id == user_id, UserXP.level < new_level)
                .values(level=new_level)
                .execution_options(synchronize_session=False)
            )

        await self._bump_daily_progress(user_id, now.date(), action, amount)

        logger.info(f"✨ {user_id} +{amount} XP for {action.value} ({reference_id}) -> {new_total} XP")
        if level_up:
            logger.info(f"🎉 {user_id} reached level {new_level}")

        award = AwardResult(
            xp_awarded=amount,
            level_up=level_up,
            new_total_xp=new_total,
            new_level=max(new_level, stored_level),
        )
        bonus = await self.apply_streak_activity(user_id, now)
        if bonus.xp_awarded:
            award.bonus_xp = bonus.xp_awarded
            award.level_up = award.level_up or bonus.level_up
            award.new_total_xp = bonus.new_total_xp
            award.new_level = bonus.new_level
        return award

    async def apply_streak_activity(self, user_id: UUID, at) -> AwardResult:
        """Record streak activity and pay the bonuses it earns (no commit)"""
        streak = await self.streaks.apply_activity(user_id, at)
        paid = AwardResult.nothing()
        for bonus_action in self.streak_bonuses(streak):
            bonus = await self.apply_award(
                user_id,
                bonus_action,
                streak.last_active_date.isoformat(),
                f"{streak.current_streak}-day streak bonus",
            )
            if bonus.xp_awarded:
                paid.xp_awarded += bonus.xp_awarded
                paid.level_up = paid.level_up or bonus.level_up
                paid.new_total_xp = bonus.new_total_xp
                paid.new_level = bonus.new_level
        return paid

    @staticmethod
    def streak_bonuses(streak: StreakState) -> List[XPAction]:
        """Bonuses owed for a streak that was just extended to a new day"""
        if not streak.changed or streak.current_streak < 2:
            return []
        bonuses = [XPAction.DAILY_STREAK_BONUS]
        if streak.current_streak % WEEKLY_STREAK_DAYS == 0:
            bonuses.append(XPAction.WEEKLY_STREAK_BONUS)
        return bonuses

    async def claim_daily_login(self, user_id: Optional[UUID], today: Optional[date] = None) -> ServiceResult[AwardResult]:
        """Daily login bonus, keyed by the UTC calendar day"""
        today = today or utcnow().date()
        return await self.award_xp(user_id, XPAction.DAILY_LOGIN, today.isoformat(), "Daily login bonus")

    async def get_xp_summary(self, user_id: Optional[UUID]) -> ServiceResult[XPSummary]:
        """Get XP totals with level progress"""
        if user_id is None:
            return ServiceResult.unauthorized()

        if self.cache is not None:
            cached = await self.cache.get_json(self._summary_key(user_id))
            if cached:
                return ServiceResult.ok(XPSummary(**cached))

        result = await self.db.execute(
            select(UserXP.total_xp, UserXP.weekly_xp, UserXP.monthly_xp)
            .where(UserXP.user_id == user_id)
        )
        row = result.one_or_none()
        total_xp, weekly_xp, monthly_xp = row if row is not None else (0, 0, 0)

        level_info = self.levels.get_level_info(total_xp)
        summary = XPSummary(**level_info.model_dump(), weekly_xp=weekly_xp, monthly_xp=monthly_xp)

        if self.cache is not None:
            await self.cache.set_json(self._summary_key(user_id), summary.model_dump(), ttl=self.settings.XP_SUMMARY_CACHE_TTL)

        return ServiceResult.ok(summary)

    async def get_xp_history(self, user_id: Optional[UUID], limit: int = 20, offset: int = 0) -> ServiceResult[XPHistory]:
        if user_id is None:
            return ServiceResult.unauthorized()
        if limit < 1 or limit > 100 or offset < 0:
            return ServiceResult.fail(ErrorCode.INVALID_INPUT, "limit must be 1-100 and offset >= 0")

        result = await self.db.execute(
            select(XPTransaction)
            .where(XPTransaction.user_id == user_id)
            .order_by(XPTransaction.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        transactions = result.scalars().all()

        total = await self.db.scalar(
            select(func.count(XPTransaction.id)).where(XPTransaction.user_id == user_id)
        )

        return ServiceResult.ok(XPHistory(
            transactions=[
                XPTransactionItem(
                    id=t.id,
                    action=t.action.value,
                    reference_id=t.reference_id,
                    amount=t.amount,
                    description=t.description,
                    created_at=t.created_at,
                )
                for t in transactions
            ],
            total=total or 0,
        ))

    async def get_daily_progress(self, user_id: Optional[UUID], today: Optional[date] = None) -> ServiceResult[DailyProgress]:
        if user_id is None:
            return ServiceResult.unauthorized()

        today = today or utcnow().date()
        progress = await self.db.scalar(
            select(UserDailyProgress)
            .where(UserDailyProgress.user_id == user_id, UserDailyProgress.date == today)
            .execution_options(populate_existing=True)
        )
        goal = await self.db.scalar(select(DailyGoal).where(DailyGoal.user_id == user_id))
        xp_goal = goal.daily_xp_goal if goal else self.settings.DEFAULT_DAILY_XP_GOAL

        if progress is None:
            return ServiceResult.ok(DailyProgress(date=today, daily_xp_goal=xp_goal))

        return ServiceResult.ok(DailyProgress(
            date=today,
            xp_earned=progress.xp_earned,
            lessons_completed=progress.lessons_completed,
            problems_solved=progress.problems_solved,
            content_completed=progress.content_completed,
            daily_xp_goal=xp_goal,
            goal_met=progress.xp_earned >= xp_goal,
        ))

    async def update_daily_goal(self, user_id: Optional[UUID], changes: DailyGoalUpdate) -> ServiceResult[DailyGoalUpdate]:
        if user_id is None:
            return ServiceResult.unauthorized()

        data = changes.model_dump(exclude_unset=True, exclude_none=True)
        try:
            goal = await self.db.scalar(select(DailyGoal).where(DailyGoal.user_id == user_id))
            if goal is None:
                goal = DailyGoal(user_id=user_id, daily_xp_goal=self.settings.DEFAULT_DAILY_XP_GOAL)
                self.db.add(goal)
            for field, value in data.items():
                setattr(goal, field, value)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Daily goal update failed for {user_id}: {e}")
            raise PersistenceFailure() from e

        return ServiceResult.ok(DailyGoalUpdate(
            daily_xp_goal=goal.daily_xp_goal,
            reminder_enabled=goal.reminder_enabled,
            reminder_time=goal.reminder_time,
        ))

    async def reset_weekly_xp(self) -> int:
        return await self._reset_period("weekly_xp", "week_starts_at")

    async def reset_monthly_xp(self) -> int:
        return await self._reset_period("monthly_xp", "month_starts_at")

    async def invalidate_cache(self, user_id: UUID) -> None:
        if self.cache is not None:
            await self.cache.delete(self._summary_key(user_id))

    async def _reset_period(self, counter: str, started_column: str) -> int:
        column = getattr(UserXP, counter)
        try:
            result = await self.db.execute(
                update(UserXP)
                .where(column > 0)
                .values({counter: 0, started_column: utcnow()})
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Resetting {counter} failed: {e}")
            raise PersistenceFailure() from e

        logger.info(f"Reset {counter} for {result.rowcount} users")
        return result.rowcount

    async def _current_totals(self, user_id: UUID):
        result = await self.db.execute(
            select(UserXP.total_xp, UserXP.level).where(UserXP.user_id == user_id)
        )
        row = result.one_or_none()
        return (row.total_xp, row.level) if row is not None else (0, 1)

    async def _bump_daily_progress(self, user_id: UUID, day: date, action: XPAction, amount: int) -> None:
        await self.db.execute(
            insert_ignoring_conflicts(self.db, UserDailyProgress).values(
                id=uuid4(),
                user_id=user_id,
                date=day,
                xp_earned=0,
                lessons_completed=0,
                problems_solved=0,
                content_completed=0,
            )
        )

        values = {"xp_earned": UserDailyProgress.xp_earned + amount}
        counter = self.DAILY_COUNTERS.get(action)
        if counter:
            values[counter] = getattr(UserDailyProgress, counter) + 1

        await self.db.execute(
            update(UserDailyProgress)
            .where(UserDailyProgress.user_id == user_id, UserDailyProgress.date == day)
            .values(values)
            .execution_options(synchronize_session=False)
        )

    def _summary_key(self, user_id: UUID) -> str:
        return self.cache.key("xp_summary", user_id)
