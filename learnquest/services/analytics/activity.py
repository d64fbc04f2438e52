# ============================================================================
# Activity Aggregator
# ============================================================================
from typing import Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import select, func
from uuid import UUID
from datetime import datetime, timedelta, date
import logging

from learnquest.config import Settings, get_settings
from learnquest.core.exceptions import PersistenceFailure
from learnquest.core.redis import RedisCache
from learnquest.core.results import ErrorCode, ServiceResult
from learnquest.core.timeutils import to_utc, utc_today, utcnow
from learnquest.models.user import User
from learnquest.models.activity import ActivityEvent, ActivityEventType
from learnquest.schemas.activity import (
    ActivityDay, CalendarDay, CalendarStats, ActivityCalendar, WeeklySummary
)
from learnquest.services.gamification.streaks import StreakTracker

logger = logging.getLogger(__name__)

MAX_RANGE_DAYS = 366

def intensity_level(count: int) -> int:
    """Heatmap bucket: 0 -> 0, 1 -> 1, 2-3 -> 2, 4-6 -> 3, 7+ -> 4"""
    if count <= 0:
        return 0
    if count == 1:
        return 1
    if count <= 3:
        return 2
    if count <= 6:
        return 3
    return 4

def build_calendar(entries: List[ActivityDay], start: date, end: date) -> List[CalendarDay]:
    """Fill every day of [start, end] with its count (0 when absent)"""
    counts: Dict[date, int] = {entry.date: entry.count for entry in entries}
    days = []
    day = start
    while day <= end:
        count = counts.get(day, 0)
        days.append(CalendarDay(date=day, count=count, level=intensity_level(count)))
        day += timedelta(days=1)
    return days

def summarize_calendar(days: List[CalendarDay]) -> CalendarStats:
    """
    Totals for a filled calendar. `current_run` counts consecutive active days
    ending on the last calendar day, or on the day before when the last day
    has no activity yet.
    """
    total = sum(day.count for day in days)
    active_days = sum(1 for day in days if day.count > 0)

    longest_run = 0
    run = 0
    for day in days:
        run = run + 1 if day.count > 0 else 0
        longest_run = max(longest_run, run)

    tail = list(days)
    if tail and tail[-1].count == 0:
        tail.pop()
    current_run = 0
    for day in reversed(tail):
        if day.count == 0:
            break
        current_run += 1

    return CalendarStats(
        total=total,
        active_days=active_days,
        longest_run=longest_run,
        current_run=current_run,
    )

class ActivityAggregator:
    """Writes activity events and aggregates them per UTC day"""

    def __init__(
        self,
        db: AsyncSession,
        cache: Optional[RedisCache] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.cache = cache
        self.settings = settings or get_settings()

    async def record_event(
        self,
        user_id: Optional[UUID],
        event_type,
        target_id: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
        details: Optional[Dict] = None,
    ) -> ServiceResult[ActivityDay]:
        """Record a standalone activity event and commit"""
        if user_id is None:
            return ServiceResult.unauthorized()

        try:
            event_type = ActivityEventType(event_type)
        except ValueError:
            return ServiceResult.fail(ErrorCode.INVALID_INPUT, f"Unknown activity type: {event_type}")

        if await self.db.scalar(select(User.id).where(User.id == user_id)) is None:
            return ServiceResult.not_found("User")

        try:
            event = self.apply_event(user_id, event_type, target_id, occurred_at, details)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Recording {event_type.value} for {user_id} failed: {e}")
            raise PersistenceFailure() from e

        await self.invalidate_year(user_id, event.activity_date.year)
        return ServiceResult.ok(ActivityDay(date=event.activity_date, count=1))

    def apply_event(
        self,
        user_id: UUID,
        event_type: ActivityEventType,
        target_id: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
        details: Optional[Dict] = None,
    ) -> ActivityEvent:
        """Stage an event inside the caller's transaction"""
        occurred_at = to_utc(occurred_at) if occurred_at else utcnow()
        event = ActivityEvent(
            user_id=user_id,
            event_type=event_type,
            target_id=str(target_id) if target_id is not None else None,
            details=details,
            occurred_at=occurred_at,
            activity_date=occurred_at.date(),
        )
        self.db.add(event)
        return event

    async def get_yearly_activity(self, user_id: Optional[UUID], year: int) -> ServiceResult[List[ActivityDay]]:
        """Per-day counts for a calendar year, cached"""
        if user_id is None:
            return ServiceResult.unauthorized()
        if year < 1970 or year > 9999:
            return ServiceResult.fail(ErrorCode.INVALID_INPUT, f"Invalid year: {year}")

        cache_key = self._year_key(user_id, year) if self.cache is not None else None
        if cache_key:
            cached = await self.cache.get_json(cache_key)
            if cached is not None:
                return ServiceResult.ok([ActivityDay(**day) for day in cached])

        days = await self._count_by_day(user_id, date(year, 1, 1), date(year, 12, 31))

        if cache_key:
            await self.cache.set_json(
                cache_key,
                [day.model_dump(mode="json") for day in days],
                ttl=self.settings.ACTIVITY_CACHE_TTL,
            )
        return ServiceResult.ok(days)

    async def get_daily_activity(
        self, user_id: Optional[UUID], start: date, end: date
    ) -> ServiceResult[List[ActivityDay]]:
        """Per-day counts for an inclusive date range, zero days omitted"""
        if user_id is None:
            return ServiceResult.unauthorized()
        if start > end:
            return ServiceResult.fail(ErrorCode.INVALID_INPUT, "start must not be after end")
        if (end - start).days >= MAX_RANGE_DAYS:
            return ServiceResult.fail(ErrorCode.INVALID_INPUT, f"Range is limited to {MAX_RANGE_DAYS} days")

        return ServiceResult.ok(await self._count_by_day(user_id, start, end))

    async def get_activity_calendar(
        self, user_id: Optional[UUID], start: date, end: date
    ) -> ServiceResult[ActivityCalendar]:
        result = await self.get_daily_activity(user_id, start, end)
        if not result.success:
            return result

        days = build_calendar(result.data, start, end)
        return ServiceResult.ok(ActivityCalendar(
            start=start,
            end=end,
            days=days,
            stats=summarize_calendar(days),
        ))

    async def get_weekly_summary(
        self, user_id: Optional[UUID], today: Optional[date] = None
    ) -> ServiceResult[WeeklySummary]:
        """The last seven UTC days ending today, with streak figures"""
        if user_id is None:
            return ServiceResult.unauthorized()

        today = today or utc_today()
        week_start = today - timedelta(days=6)
        entries = await self._count_by_day(user_id, week_start, today)
        days = build_calendar(entries, week_start, today)

        streak = (await StreakTracker(self.db).get_streak(user_id, today)).data

        return ServiceResult.ok(WeeklySummary(
            week_start=week_start,
            week_end=today,
            days=days,
            total_events=sum(day.count for day in days),
            active_days=sum(1 for day in days if day.count > 0),
            current_streak=streak.current_streak,
            longest_streak=streak.longest_streak,
        ))

    async def invalidate_year(self, user_id: UUID, year: int) -> None:
        if self.cache is not None:
            await self.cache.delete(self._year_key(user_id, year))

    async def _count_by_day(self, user_id: UUID, start: date, end: date) -> List[ActivityDay]:
        result = await self.db.execute(
            select(
                ActivityEvent.activity_date,
                func.count(ActivityEvent.id).label("count")
            )
            .where(
                ActivityEvent.user_id == user_id,
                ActivityEvent.activity_date >= start,
                ActivityEvent.activity_date <= end,
            )
            .group_by(ActivityEvent.activity_date)
            .order_by(ActivityEvent.activity_date)
        )
        return [ActivityDay(date=row.activity_date, count=row.count) for row in result.all()]

    def _year_key(self, user_id: UUID, year: int) -> str:
        return self.cache.key("activity", user_id, year)
