# ============================================================================
# Achievement Tests
# ============================================================================
import uuid
from sqlalchemy import select, func

from learnquest.core.results import ErrorCode
from learnquest.models.achievement import UserAchievement
from learnquest.models.gamification import XPAction, XPTransaction
from learnquest.services.gamification.achievements import AchievementSystem
from learnquest.services.gamification.xp_system import XPSystem
from learnquest.services.progress.course_progress import CourseProgressService
from learnquest.services.practice.submissions import SubmissionService

FIRST_LESSON = {"type": "count", "metric": "lessons_completed", "target": 1}

class TestAchievementSystem:
    async def test_lesson_unlocks_once(self, db_session, user, course, lessons, make_achievement):
        achievement = await make_achievement("first-lesson", FIRST_LESSON, xp_reward=30)
        progress = CourseProgressService(db_session)
        await progress.enroll(user.id, course.id)

        first = (await progress.complete_lesson(user.id, course.id, lessons[0].id)).data
        second = (await progress.complete_lesson(user.id, course.id, lessons[1].id)).data

        assert first.achievements_unlocked == ["first-lesson"]
        assert first.xp_awarded == 10  # achievement XP is reported separately
        assert second.achievements_unlocked == []

        bonus = (await db_session.execute(
            select(XPTransaction).where(
                XPTransaction.user_id == user.id, XPTransaction.action == XPAction.ACHIEVEMENT_BONUS
            )
        )).scalars().all()
        assert len(bonus) == 1
        assert bonus[0].amount == 30
        assert bonus[0].reference_id == str(achievement.id)

        recheck = (await AchievementSystem(db_session).check_achievements(user.id)).data
        assert recheck == []

        summary = (await XPSystem(db_session).get_xp_summary(user.id)).data
        assert summary.total_xp == 10 + 10 + 25 + 30

    async def test_condition_not_met(self, db_session, user, make_achievement):
        await make_achievement("ten-lessons", {"type": "count", "metric": "lessons_completed", "target": 10})

        unlocked = (await AchievementSystem(db_session).check_achievements(user.id)).data

        assert unlocked == []
        assert await db_session.scalar(select(func.count(UserAchievement.id))) == 0

    async def test_first_solve_unlocks(self, db_session, user, make_problem, make_achievement, mock_judge):
        await make_achievement("first-solve", {"type": "first", "metric": "problems_solved"})
        problem = await make_problem()

        result = (await SubmissionService(db_session, mock_judge).submit_solution(
            user.id, problem.id, "print(3)"
        )).data

        assert result.first_solve
        assert result.achievements_unlocked == ["first-solve"]

    async def test_level_and_xp_conditions(self, db_session, user, make_achievement):
        await make_achievement("level-two", {"type": "level", "target": 2})
        await make_achievement("big-earner", {"type": "count", "metric": "total_xp", "target": 100})
        await XPSystem(db_session).award_xp(user.id, XPAction.COMPLETE_COURSE, "course-1")

        unlocked = (await AchievementSystem(db_session).check_achievements(user.id)).data

        assert sorted(a.slug for a in unlocked) == ["big-earner", "level-two"]
        assert all(a.is_unlocked for a in unlocked)

    async def test_streak_condition(self, db_session, user, make_achievement):
        await make_achievement("streak-starter", {"type": "streak", "metric": "current", "target": 1})
        await XPSystem(db_session).award_xp(user.id, XPAction.DAILY_LOGIN, "day-1")

        unlocked = (await AchievementSystem(db_session).check_achievements(user.id)).data
        assert [a.slug for a in unlocked] == ["streak-starter"]

    async def test_secret_hidden_until_unlocked(self, db_session, user, make_achievement):
        await make_achievement("visible", {"type": "level", "target": 50}, category="level")
        await make_achievement("hidden", {"type": "level", "target": 50}, is_secret=True)
        await make_achievement("hidden-earned", {"type": "level", "target": 1}, is_secret=True)
        system = AchievementSystem(db_session)

        await system.check_achievements(user.id)
        listed = (await system.get_user_achievements(user.id)).data

        assert sorted(a.slug for a in listed) == ["hidden-earned", "visible"]
        assert {a.slug: a.is_unlocked for a in listed} == {"hidden-earned": True, "visible": False}

    async def test_stats(self, db_session, user, make_achievement):
        await make_achievement("a", {"type": "level", "target": 1}, xp_reward=20, category="level")
        await make_achievement("b", {"type": "level", "target": 9}, xp_reward=50, category="level")
        await make_achievement("c", {"type": "first", "metric": "lessons_completed"}, category="learning")
        system = AchievementSystem(db_session)
        await system.check_achievements(user.id)

        stats = (await system.get_achievement_stats(user.id)).data

        assert stats.total == 3
        assert stats.unlocked == 1
        assert stats.xp_earned == 20
        assert [(c.category, c.total, c.unlocked) for c in stats.by_category] == [
            ("learning", 1, 0),
            ("level", 2, 1),
        ]

    async def test_unknown_metric_never_unlocks(self, db_session, user, make_achievement):
        system = AchievementSystem(db_session)
        await make_achievement("mystery", {"type": "count", "metric": "bookmarks", "target": 1})

        assert await system.metric_count(user.id, "bookmarks") == 0
        assert (await system.check_achievements(user.id)).data == []

    async def test_unknown_user(self, db_session):
        result = await AchievementSystem(db_session).check_achievements(uuid.uuid4())
        assert result.error_code == ErrorCode.NOT_FOUND

    async def test_unauthorized(self, db_session):
        result = await AchievementSystem(db_session).get_user_achievements(None)
        assert result.error_code == ErrorCode.UNAUTHORIZED
