# ============================================================================
# API Endpoint Tests
# ============================================================================
import pytest
import uuid
from httpx import AsyncClient

from learnquest.core.security import create_access_token

class TestHealthEndpoint:
    """Tests for health check endpoint"""

    async def test_health_check(self, client: AsyncClient):
        """Test health check returns OK"""
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

class TestAuthentication:
    """Missing or invalid tokens are reported as 401"""

    async def test_xp_requires_auth(self, client: AsyncClient):
        response = await client.get("/api/v1/xp")

        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHORIZED"

    async def test_invalid_token(self, client: AsyncClient):
        response = await client.get("/api/v1/streak", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

    async def test_leaderboard_is_public(self, client: AsyncClient):
        response = await client.get("/api/v1/xp/leaderboard?period=all_time")

        assert response.status_code == 200
        assert response.json()["current_user_rank"] is None

class TestGamificationEndpoints:
    async def test_daily_login_flow(self, client: AsyncClient, auth_headers):
        first = await client.post("/api/v1/xp/daily-login", headers=auth_headers)
        again = await client.post("/api/v1/xp/daily-login", headers=auth_headers)

        assert first.status_code == 200
        assert first.json()["xp_awarded"] == 5
        assert again.json()["xp_awarded"] == 0

        summary = (await client.get("/api/v1/xp", headers=auth_headers)).json()
        assert summary["total_xp"] == 5
        assert summary["level"] == 1

        streak = (await client.get("/api/v1/streak", headers=auth_headers)).json()
        assert streak["current_streak"] == 1
        assert streak["status"] == "active"

    async def test_daily_goal_validation(self, client: AsyncClient, auth_headers):
        response = await client.put("/api/v1/daily-goal", json={"reminder_time": "25:00"}, headers=auth_headers)
        assert response.status_code == 422

    async def test_unknown_user_token(self, client: AsyncClient):
        token = create_access_token({"sub": str(uuid.uuid4())})
        response = await client.post("/api/v1/xp/daily-login", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 404

    async def test_achievements(self, client: AsyncClient, auth_headers, make_achievement):
        await make_achievement("newcomer", {"type": "level", "target": 1}, xp_reward=10)

        checked = await client.post("/api/v1/achievements/check", headers=auth_headers)
        assert checked.status_code == 200
        assert [a["slug"] for a in checked.json()] == ["newcomer"]

        listed = (await client.get("/api/v1/achievements", headers=auth_headers)).json()
        assert listed[0]["is_unlocked"] is True

        stats = (await client.get("/api/v1/achievements/stats", headers=auth_headers)).json()
        assert stats["unlocked"] == 1
        assert stats["xp_earned"] == 10

class TestProgressEndpoints:
    async def test_complete_lesson(self, client: AsyncClient, auth_headers, course, lessons):
        url = f"/api/v1/courses/{course.id}/lessons/{lessons[0].id}/complete"

        not_enrolled = await client.post(url, headers=auth_headers)
        assert not_enrolled.status_code == 409
        assert not_enrolled.json()["error_code"] == "NOT_ENROLLED"

        enrolled = await client.post(f"/api/v1/courses/{course.id}/enroll", headers=auth_headers)
        assert enrolled.status_code == 200

        completed = await client.post(url, headers=auth_headers)
        assert completed.status_code == 200
        assert completed.json()["progress"] == 33
        assert completed.json()["xp_awarded"] == 10

        repeated = await client.post(url, headers=auth_headers)
        assert repeated.json()["xp_awarded"] == 0

    async def test_unknown_course(self, client: AsyncClient, auth_headers):
        response = await client.post(
            f"/api/v1/courses/{uuid.uuid4()}/lessons/{uuid.uuid4()}/complete", headers=auth_headers
        )
        assert response.status_code == 404

    async def test_content_progress(self, client: AsyncClient, auth_headers, make_content):
        content = await make_content()
        url = f"/api/v1/content/{content.id}/progress"

        halfway = await client.put(url, json={"progress": 50, "time_spent": 60}, headers=auth_headers)
        assert halfway.status_code == 200
        assert halfway.json()["xp_awarded"] == 5

        done = (await client.put(url, json={"progress": 100}, headers=auth_headers)).json()
        assert done["just_completed"] is True
        assert done["xp_awarded"] == 15 + 20

        current = (await client.get(url, headers=auth_headers)).json()
        assert current["progress"] == 100
        assert current["time_spent"] == 60

    async def test_content_progress_validation(self, client: AsyncClient, auth_headers, make_content):
        content = await make_content()
        response = await client.put(
            f"/api/v1/content/{content.id}/progress", json={"progress": 101}, headers=auth_headers
        )
        assert response.status_code == 422

class TestPracticeEndpoints:
    async def test_submit_solution(self, client: AsyncClient, auth_headers, make_problem):
        problem = await make_problem()

        response = await client.post(
            f"/api/v1/problems/{problem.id}/submissions",
            json={"code": "print(3)"},
            headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["first_solve"] is True

        status = (await client.get(f"/api/v1/problems/{problem.id}/status", headers=auth_headers)).json()
        assert status["state"] == "SOLVED"

    async def test_submit_without_judge(self, client: AsyncClient, auth_headers, make_problem):
        from learnquest.main import app

        problem = await make_problem()
        app.state.judge = None

        response = await client.post(
            f"/api/v1/problems/{problem.id}/submissions",
            json={"code": "print(3)"},
            headers=auth_headers
        )
        assert response.status_code == 503

class TestActivityEndpoints:
    async def test_view_then_calendar(self, client: AsyncClient, auth_headers):
        recorded = await client.post("/api/v1/activity/views", json={"content_id": "post-1"}, headers=auth_headers)
        assert recorded.status_code == 200

        calendar = (await client.get("/api/v1/activity/calendar", headers=auth_headers)).json()
        assert len(calendar["days"]) == 365
        assert calendar["stats"]["total"] == 1
        assert calendar["days"][-1]["level"] == 1

    async def test_invalid_range(self, client: AsyncClient, auth_headers):
        response = await client.get(
            "/api/v1/activity/daily?start=2026-05-02&end=2026-05-01", headers=auth_headers
        )
        assert response.status_code == 422

class TestAccountEndpoints:
    async def test_delete_account(self, client: AsyncClient, auth_headers):
        await client.post("/api/v1/xp/daily-login", headers=auth_headers)

        response = await client.delete("/api/v1/account", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["users"] == 1

        gone = await client.delete("/api/v1/account", headers=auth_headers)
        assert gone.status_code == 404
