# ============================================================================
# Daily Streak Tracker
# ============================================================================
from datetime import date, timedelta
from typing import Optional
from uuid import UUID, uuid4
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from learnquest.core.database import insert_ignoring_conflicts
from learnquest.core.exceptions import PersistenceFailure
from learnquest.core.results import ServiceResult
from learnquest.core.timeutils import to_activity_day, utc_today
from learnquest.models.gamification import UserStreak
from learnquest.schemas.gamification import StreakState, StreakInfo

logger = logging.getLogger(__name__)

CAS_ATTEMPTS = 3

def advance_streak(state: StreakState, day: date) -> StreakState:
    """
    Pure streak transition for activity on `day`.

    Same day (or an older day) leaves the state untouched; the following day
    extends the streak; any gap restarts it at 1.
    """
    last = state.last_active_date
    if last is not None and day <= last:
        return state.model_copy(update={"changed": False})

    if last is not None and day == last + timedelta(days=1):
        current = state.current_streak + 1
    else:
        current = 1

    return StreakState(
        current_streak=current,
        longest_streak=max(state.longest_streak, current),
        last_active_date=day,
        total_active_days=state.total_active_days + 1,
        changed=True,
    )

class StreakTracker:
    """Sole writer of `UserStreak` rows"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record_activity(self, user_id: Optional[UUID], activity_date) -> ServiceResult[StreakState]:
        """Record qualifying activity and commit"""
        if user_id is None:
            return ServiceResult.unauthorized()

        try:
            state = await self.apply_activity(user_id, activity_date)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Streak update failed for {user_id}: {e}")
            raise PersistenceFailure() from e

        return ServiceResult.ok(state)

    async def apply_activity(self, user_id: UUID, activity_date) -> StreakState:
        """Update the streak inside the caller's transaction"""
        day = to_activity_day(activity_date)

        await self.db.execute(
            insert_ignoring_conflicts(self.db, UserStreak).values(
                id=uuid4(),
                user_id=user_id,
                current_streak=0,
                longest_streak=0,
                last_active_date=None,
                total_active_days=0,
            )
        )

        state = await self._load_state(user_id)
        for _ in range(CAS_ATTEMPTS):
            next_state = advance_streak(state, day)
            if not next_state.changed:
                return next_state

            # compare-and-set on the day we read, so a concurrent request for
            # the same day cannot increment twice
            if state.last_active_date is None:
                prior = UserStreak.last_active_date.is_(None)
            else:
                prior = UserStreak.last_active_date == state.last_active_date

            result = await self.db.execute(
                update(UserStreak)
                .where(UserStreak.user_id == user_id, prior)
                .values(
                    current_streak=next_state.current_streak,
                    longest_streak=next_state.longest_streak,
                    last_active_date=next_state.last_active_date,
                    total_active_days=next_state.total_active_days,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                if next_state.current_streak > 1:
                    logger.info(f"🔥 {user_id} streak is now {next_state.current_streak} days")
                return next_state

            logger.debug(f"Streak for {user_id} changed concurrently, re-reading")
            state = await self._load_state(user_id)

        return state.model_copy(update={"changed": False})

    async def get_streak(self, user_id: Optional[UUID], today: Optional[date] = None) -> ServiceResult[StreakInfo]:
        if user_id is None:
            return ServiceResult.unauthorized()

        today = today or utc_today()
        state = await self._load_state(user_id)
        last = state.last_active_date

        if last is not None and last >= today:
            status = "active"
            current = state.current_streak
        elif last == today - timedelta(days=1):
            status = "at_risk"
            current = state.current_streak
        else:
            status = "broken"
            current = 0

        return ServiceResult.ok(StreakInfo(
            current_streak=current,
            longest_streak=state.longest_streak,
            last_active_date=last,
            total_active_days=state.total_active_days,
            is_active_today=status == "active",
            status=status,
        ))

    async def _load_state(self, user_id: UUID) -> StreakState:
        result = await self.db.execute(
            select(
                UserStreak.current_streak,
                UserStreak.longest_streak,
                UserStreak.last_active_date,
                UserStreak.total_active_days,
            ).where(UserStreak.user_id == user_id)
        )
        row = result.one_or_none()
        if row is None:
            return StreakState()
        return StreakState(
            current_streak=row.current_streak,
            longest_streak=row.longest_streak,
            last_active_date=row.last_active_date,
            total_active_days=row.total_active_days,
        )
