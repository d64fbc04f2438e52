# ============================================================================
# Activity Endpoints
# ============================================================================
from fastapi import APIRouter, Depends, Query
from typing import Optional, List
from datetime import date, timedelta
from uuid import UUID

from learnquest.api.deps import get_activity_aggregator
from learnquest.core.security import get_current_user_id
from learnquest.core.timeutils import utc_today
from learnquest.models.activity import ActivityEventType
from learnquest.schemas.activity import (
    ActivityDay, ActivityCalendar, WeeklySummary, ContentViewRequest
)
from learnquest.services.analytics.activity import ActivityAggregator

router = APIRouter(prefix="/activity", tags=["activity"])

@router.get("/yearly", response_model=List[ActivityDay])
async def get_yearly_activity(
    year: Optional[int] = Query(None),
    user_id: Optional[UUID] = Depends(get_current_user_id),
    activity: ActivityAggregator = Depends(get_activity_aggregator)
):
    """Days with activity in a calendar year (defaults to the current one)"""
    year = year or utc_today().year
    return (await activity.get_yearly_activity(user_id, year)).unwrap()

@router.get("/daily", response_model=List[ActivityDay])
async def get_daily_activity(
    start: date,
    end: date,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    activity: ActivityAggregator = Depends(get_activity_aggregator)
):
    return (await activity.get_daily_activity(user_id, start, end)).unwrap()

@router.get("/calendar", response_model=ActivityCalendar)
async def get_activity_calendar(
    start: Optional[date] = None,
    end: Optional[date] = None,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    activity: ActivityAggregator = Depends(get_activity_aggregator)
):
    """Heatmap for a date range, defaults to the last 365 days"""
    end = end or utc_today()
    start = start or end - timedelta(days=364)
    return (await activity.get_activity_calendar(user_id, start, end)).unwrap()

@router.get("/weekly", response_model=WeeklySummary)
async def get_weekly_summary(
    user_id: Optional[UUID] = Depends(get_current_user_id),
    activity: ActivityAggregator = Depends(get_activity_aggregator)
):
    return (await activity.get_weekly_summary(user_id)).unwrap()

@router.post("/views", response_model=ActivityDay)
async def record_content_view(
    request: ContentViewRequest,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    activity: ActivityAggregator = Depends(get_activity_aggregator)
):
    details = request.model_dump(exclude={"content_id"}, exclude_none=True)
    result = await activity.record_event(
        user_id,
        ActivityEventType.CONTENT_VIEW,
        target_id=request.content_id,
        details=details or None,
    )
    return result.unwrap()
