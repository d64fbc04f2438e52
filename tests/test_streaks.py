# ============================================================================
# Streak Tracker Tests
# ============================================================================
import pytest
from datetime import date, datetime, timedelta, timezone

from learnquest.core.results import ErrorCode
from learnquest.core.timeutils import to_activity_day
from learnquest.schemas.gamification import StreakState
from learnquest.services.gamification.streaks import StreakTracker, advance_streak

DAY = date(2026, 3, 10)

class TestAdvanceStreak:
    """Pure transition rules"""

    def test_first_activity(self):
        state = advance_streak(StreakState(), DAY)
        assert (state.current_streak, state.longest_streak, state.total_active_days) == (1, 1, 1)
        assert state.changed

    def test_same_day_is_noop(self):
        state = advance_streak(StreakState(), DAY)
        again = advance_streak(state, DAY)
        assert again.current_streak == 1
        assert again.total_active_days == 1
        assert not again.changed

    def test_consecutive_days(self):
        state = StreakState()
        for offset in range(5):
            state = advance_streak(state, DAY + timedelta(days=offset))
        assert state.current_streak == 5
        assert state.longest_streak == 5

    def test_gap_resets_but_keeps_longest(self):
        state = StreakState()
        for offset in range(3):
            state = advance_streak(state, DAY + timedelta(days=offset))
        state = advance_streak(state, DAY + timedelta(days=5))

        assert state.current_streak == 1
        assert state.longest_streak == 3
        assert state.total_active_days == 4

    def test_older_day_is_noop(self):
        state = advance_streak(StreakState(), DAY)
        earlier = advance_streak(state, DAY - timedelta(days=3))
        assert earlier.last_active_date == DAY
        assert not earlier.changed

class TestActivityDay:
    def test_naive_datetime_is_utc(self):
        assert to_activity_day(datetime(2026, 3, 10, 23, 30)) == date(2026, 3, 10)

    def test_aware_datetime_converted(self):
        harare = timezone(timedelta(hours=2))
        assert to_activity_day(datetime(2026, 3, 11, 1, 0, tzinfo=harare)) == date(2026, 3, 10)

    def test_rejects_other_types(self):
        with pytest.raises(TypeError):
            to_activity_day("2026-03-10")

class TestStreakTracker:
    """Persisted streaks"""

    async def test_sequence(self, db_session, user):
        tracker = StreakTracker(db_session)

        for offset in (0, 0, 1, 2):
            await tracker.record_activity(user.id, DAY + timedelta(days=offset))

        info = (await tracker.get_streak(user.id, today=DAY + timedelta(days=2))).data
        assert info.current_streak == 3
        assert info.longest_streak == 3
        assert info.total_active_days == 3
        assert info.status == "active"

    async def test_status_at_risk_and_broken(self, db_session, user):
        tracker = StreakTracker(db_session)
        await tracker.record_activity(user.id, DAY)

        at_risk = (await tracker.get_streak(user.id, today=DAY + timedelta(days=1))).data
        assert at_risk.status == "at_risk"
        assert at_risk.current_streak == 1

        broken = (await tracker.get_streak(user.id, today=DAY + timedelta(days=2))).data
        assert broken.status == "broken"
        assert broken.current_streak == 0
        assert broken.longest_streak == 1

    async def test_longest_never_below_current(self, db_session, user):
        tracker = StreakTracker(db_session)
        days = [0, 1, 2, 5, 6, 7, 8, 20]
        for offset in days:
            state = (await tracker.record_activity(user.id, DAY + timedelta(days=offset))).data
            assert state.longest_streak >= state.current_streak

        assert state.current_streak == 1
        assert state.longest_streak == 4

    async def test_no_streak_yet(self, db_session, user):
        info = (await StreakTracker(db_session).get_streak(user.id, today=DAY)).data
        assert info.current_streak == 0
        assert info.status == "broken"

    async def test_unauthorized(self, db_session):
        result = await StreakTracker(db_session).record_activity(None, DAY)
        assert result.error_code == ErrorCode.UNAUTHORIZED
