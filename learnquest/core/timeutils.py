# ============================================================================
# Calendar Day Policy
# ============================================================================
"""
Every calendar-day computation in the engine (streaks, daily progress,
activity heatmaps, daily-login keys) uses the UTC calendar day.

Naive datetimes are interpreted as UTC; aware datetimes are converted to UTC
before their date is taken.
"""
from datetime import date, datetime, timezone

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def utc_today() -> date:
    return utcnow().date()

def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

def to_activity_day(value) -> date:
    """Normalize a date or datetime to its UTC calendar day"""
    if isinstance(value, datetime):
        return to_utc(value).date()
    if isinstance(value, date):
        return value
    raise TypeError(f"Expected date or datetime, got {type(value).__name__}")
