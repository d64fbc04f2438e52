# ============================================================================
# Gamification Tests
# ============================================================================
import pytest
import uuid
from datetime import date, timedelta
from sqlalchemy import select, func

from learnquest.core.results import ErrorCode
from learnquest.core.timeutils import utc_today
from learnquest.models.gamification import XPAction, UserXP, XPTransaction, UserDailyProgress
from learnquest.schemas.gamification import DailyGoalUpdate
from learnquest.services.gamification.levels import LevelCurve, LEVEL_TITLES
from learnquest.services.gamification.xp_system import XPSystem
from learnquest.services.gamification.leaderboards import LeaderboardService

class TestLevelCurve:
    """Tests for the level curve"""

    def test_thresholds(self):
        curve = LevelCurve()
        assert [curve.threshold(n) for n in range(1, 7)] == [0, 100, 300, 600, 1000, 1500]

    def test_level_calculation(self):
        """Test level calculation from XP"""
        curve = LevelCurve()

        assert curve.level_for(0) == 1
        assert curve.level_for(99) == 1
        assert curve.level_for(100) == 2
        assert curve.level_for(299) == 2
        assert curve.level_for(300) == 3
        assert curve.level_for(1000) == 5
        assert curve.level_for(4500) == 10

    def test_level_is_monotonic(self):
        curve = LevelCurve(base_xp=75)
        levels = [curve.level_for(xp) for xp in range(0, 20000, 7)]
        assert levels == sorted(levels)
        for xp in range(0, 5000, 13):
            level = curve.level_for(xp)
            assert curve.threshold(level) <= xp < curve.threshold(level + 1)

    def test_negative_xp_rejected(self):
        with pytest.raises(ValueError):
            LevelCurve().level_for(-1)

    def test_level_info(self):
        """Test level info retrieval"""
        info = LevelCurve().get_level_info(1200)

        assert info.level == 5
        assert info.title == LEVEL_TITLES[4]
        assert info.xp_in_level == 200
        assert info.xp_for_next_level == 500
        assert info.xp_to_next_level == 300
        assert info.progress_percent == 40.0

    def test_title_beyond_table(self):
        assert LevelCurve.title_for(99) == LEVEL_TITLES[-1]

class TestXPSystem:
    """Tests for XP awards"""

    def test_xp_values(self):
        """Test XP value constants"""
        assert XPSystem.XP_VALUES[XPAction.COMPLETE_LESSON] == 10
        assert XPSystem.XP_VALUES[XPAction.COMPLETE_SECTION] == 25
        assert XPSystem.XP_VALUES[XPAction.COMPLETE_COURSE] == 100
        assert XPSystem.XP_VALUES[XPAction.SOLVE_PROBLEM_HARD] == 50
        assert set(XPSystem.XP_VALUES) == set(XPAction)
        assert all(amount > 0 for amount in XPSystem.XP_VALUES.values())

    async def test_award_is_idempotent(self, db_session, user):
        system = XPSystem(db_session)

        first = await system.award_xp(user.id, XPAction.COMPLETE_CONTENT, "post-1")
        second = await system.award_xp(user.id, XPAction.COMPLETE_CONTENT, "post-1")

        assert first.success and first.data.xp_awarded == 15
        assert second.success and second.data.xp_awarded == 0
        assert second.data.level_up is False
        assert second.data.new_total_xp == 15

        count = await db_session.scalar(
            select(func.count(XPTransaction.id)).where(XPTransaction.user_id == user.id)
        )
        assert count == 1

    async def test_different_references_both_pay(self, db_session, user):
        system = XPSystem(db_session)
        await system.award_xp(user.id, XPAction.READ_CONTENT, "post-1")
        result = await system.award_xp(user.id, XPAction.READ_CONTENT, "post-2")

        assert result.data.new_total_xp == 10

    async def test_action_accepts_string(self, db_session, user):
        result = await XPSystem(db_session).award_xp(user.id, "LIKE_CONTENT", "post-9")
        assert result.data.xp_awarded == 2

    async def test_level_up_reported_once(self, db_session, user):
        system = XPSystem(db_session)

        results = []
        for n in range(1, 5):
            results.append(await system.award_xp(user.id, XPAction.SOLVE_PROBLEM_MEDIUM, f"p{n}"))

        # 25, 50, 75, 100 -> only the fourth award crosses 100
        assert [r.data.level_up for r in results] == [False, False, False, True]
        assert results[-1].data.new_level == 2

        ledger = await db_session.scalar(
            select(UserXP).where(UserXP.user_id == user.id).execution_options(populate_existing=True)
        )
        assert ledger.total_xp == 100
        assert ledger.weekly_xp == 100
        assert ledger.monthly_xp == 100
        assert ledger.level == 2

    async def test_unauthorized(self, db_session):
        result = await XPSystem(db_session).award_xp(None, XPAction.COMMENT, "c-1")
        assert not result.success
        assert result.error_code == ErrorCode.UNAUTHORIZED

    async def test_unknown_action(self, db_session, user):
        result = await XPSystem(db_session).award_xp(user.id, "TELEPORT", "x")
        assert result.error_code == ErrorCode.INVALID_INPUT
        assert result.data.xp_awarded == 0

    async def test_empty_reference(self, db_session, user):
        result = await XPSystem(db_session).award_xp(user.id, XPAction.COMMENT, "  ")
        assert result.error_code == ErrorCode.INVALID_INPUT

    async def test_unknown_user(self, db_session):
        result = await XPSystem(db_session).award_xp(uuid.uuid4(), XPAction.COMMENT, "c-1")
        assert result.error_code == ErrorCode.NOT_FOUND
        assert result.data.xp_awarded == 0

    async def test_award_updates_daily_progress(self, db_session, user):
        system = XPSystem(db_session)
        await system.award_xp(user.id, XPAction.COMPLETE_LESSON, "lesson-1")
        await system.award_xp(user.id, XPAction.SOLVE_PROBLEM_EASY, "problem-1")

        progress = (await system.get_daily_progress(user.id)).data
        assert progress.xp_earned == 20
        assert progress.lessons_completed == 1
        assert progress.problems_solved == 1
        assert progress.daily_xp_goal == 50
        assert progress.goal_met is False

        rows = await db_session.scalar(
            select(func.count(UserDailyProgress.id)).where(UserDailyProgress.user_id == user.id)
        )
        assert rows == 1

    async def test_award_starts_streak(self, db_session, user):
        from learnquest.services.gamification.streaks import StreakTracker

        await XPSystem(db_session).award_xp(user.id, XPAction.COMMENT, "c-1")
        streak = (await StreakTracker(db_session).get_streak(user.id)).data

        assert streak.current_streak == 1
        assert streak.is_active_today

    async def test_daily_login_once_per_day(self, db_session, user):
        system = XPSystem(db_session)
        today = utc_today()

        first = await system.claim_daily_login(user.id, today)
        again = await system.claim_daily_login(user.id, today)
        tomorrow = await system.claim_daily_login(user.id, today + timedelta(days=1))

        assert first.data.xp_awarded == 5
        assert again.data.xp_awarded == 0
        assert tomorrow.data.xp_awarded == 5

    async def test_summary_and_history(self, db_session, user):
        system = XPSystem(db_session)
        await system.award_xp(user.id, XPAction.COMPLETE_COURSE, "course-1")
        await system.award_xp(user.id, XPAction.COMMENT, "c-1")

        summary = (await system.get_xp_summary(user.id)).data
        assert summary.total_xp == 105
        assert summary.level == 2
        assert summary.weekly_xp == 105

        history = (await system.get_xp_history(user.id, limit=1)).data
        assert history.total == 2
        assert len(history.transactions) == 1

    async def test_summary_without_ledger(self, db_session, user):
        summary = (await XPSystem(db_session).get_xp_summary(user.id)).data
        assert summary.total_xp == 0
        assert summary.level == 1

    async def test_summary_cache(self, db_session, user, mock_cache):
        system = XPSystem(db_session, cache=mock_cache)

        await system.get_xp_summary(user.id)
        mock_cache.set_json.assert_awaited_once()

        await system.award_xp(user.id, XPAction.COMMENT, "c-1")
        mock_cache.delete.assert_awaited_with(f"learnquest:xp_summary:{user.id}")

    async def test_summary_without_cache(self, db_session, user):
        system = XPSystem(db_session, cache=None)
        await system.award_xp(user.id, XPAction.COMPLETE_SECTION, "s-1")

        first = (await system.get_xp_summary(user.id)).data
        await system.invalidate_cache(user.id)
        second = (await system.get_xp_summary(user.id)).data

        assert first.total_xp == second.total_xp == 25

    async def test_streak_bonuses(self, db_session, user):
        from learnquest.services.gamification.streaks import StreakTracker

        today = utc_today()
        tracker = StreakTracker(db_session)
        for days_ago in range(6, 0, -1):
            await tracker.record_activity(user.id, today - timedelta(days=days_ago))

        system = XPSystem(db_session)
        award = (await system.award_xp(user.id, XPAction.COMPLETE_LESSON, "lesson-1")).data

        # seventh day in a row pays the daily and the weekly bonus
        assert award.xp_awarded == 10
        assert award.bonus_xp == 10 + 50
        assert award.new_total_xp == 70

        again = (await system.award_xp(user.id, XPAction.COMPLETE_LESSON, "lesson-2")).data
        assert again.bonus_xp == 0

        actions = [tuple(row) for row in (await db_session.execute(
            select(XPTransaction.action, XPTransaction.reference_id).where(XPTransaction.user_id == user.id)
        )).all()]
        assert (XPAction.DAILY_STREAK_BONUS, today.isoformat()) in actions
        assert (XPAction.WEEKLY_STREAK_BONUS, today.isoformat()) in actions

    async def test_no_bonus_for_first_day(self, db_session, user):
        award = (await XPSystem(db_session).award_xp(user.id, XPAction.COMPLETE_LESSON, "lesson-1")).data
        assert award.bonus_xp == 0
        assert award.new_total_xp == 10

    async def test_update_daily_goal(self, db_session, user):
        system = XPSystem(db_session)
        result = await system.update_daily_goal(user.id, DailyGoalUpdate(daily_xp_goal=10))
        assert result.data.daily_xp_goal == 10

        await system.award_xp(user.id, XPAction.COMPLETE_CONTENT, "post-1")
        progress = (await system.get_daily_progress(user.id)).data
        assert progress.goal_met is True

    async def test_reset_weekly_keeps_total(self, db_session, user):
        system = XPSystem(db_session)
        await system.award_xp(user.id, XPAction.COMPLETE_COURSE, "course-1")

        assert await system.reset_weekly_xp() == 1

        summary = (await system.get_xp_summary(user.id)).data
        assert summary.weekly_xp == 0
        assert summary.monthly_xp == 100
        assert summary.total_xp == 100

class TestLeaderboard:
    """Tests for leaderboards"""

    async def test_ranking(self, db_session, make_user):
        system = XPSystem(db_session)
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        carol = await make_user("Carol")

        await system.award_xp(alice.id, XPAction.COMPLETE_COURSE, "c1")
        await system.award_xp(bob.id, XPAction.COMPLETE_SECTION, "s1")
        await system.award_xp(carol.id, XPAction.COMPLETE_COURSE, "c2")

        board = (await LeaderboardService(db_session).get_leaderboard("all_time", 10, bob.id)).data

        assert [e.xp for e in board.entries] == [100, 100, 25]
        assert [e.rank for e in board.entries] == [1, 1, 3]
        assert board.current_user_rank == 3
        assert board.entries[2].is_current_user

    async def test_rank_outside_page(self, db_session, make_user):
        system = XPSystem(db_session)
        top = await make_user("Top")
        me = await make_user("Me")
        await system.award_xp(top.id, XPAction.COMPLETE_COURSE, "c1")
        await system.award_xp(me.id, XPAction.COMMENT, "c1")

        board = (await LeaderboardService(db_session).get_leaderboard("weekly", 1, me.id)).data

        assert len(board.entries) == 1
        assert board.current_user_rank == 2

    async def test_unknown_period(self, db_session):
        result = await LeaderboardService(db_session).get_leaderboard("decade")
        assert result.error_code == ErrorCode.INVALID_INPUT


# Run tests with: pytest tests/ -v
