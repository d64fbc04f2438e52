# ============================================================================
# Activity Schemas
# ============================================================================
from pydantic import BaseModel
from typing import Optional, List
from datetime import date

class ActivityDay(BaseModel):
    date: date
    count: int

class CalendarDay(ActivityDay):
    level: int

class CalendarStats(BaseModel):
    total: int
    active_days: int
    longest_run: int
    current_run: int

class ActivityCalendar(BaseModel):
    start: date
    end: date
    days: List[CalendarDay]
    stats: CalendarStats

class WeeklySummary(BaseModel):
    week_start: date
    week_end: date
    days: List[CalendarDay]
    total_events: int
    active_days: int
    current_streak: int
    longest_streak: int

class ContentViewRequest(BaseModel):
    content_id: str
    referrer: Optional[str] = None
    duration_seconds: Optional[int] = None
