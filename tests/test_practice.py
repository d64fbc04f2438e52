# ============================================================================
# Practice Submission Tests
# ============================================================================
import pytest
import uuid
import httpx
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy import select, func

from learnquest.core.exceptions import JudgeUnavailable
from learnquest.core.results import ErrorCode
from learnquest.models.practice import (
    Difficulty, PracticeSubmission, ProblemState, SubmissionStatus
)
from learnquest.schemas.progress import JudgeVerdict
from learnquest.services.practice.judge import HttpJudgeClient, JudgeClient
from learnquest.services.practice.submissions import SubmissionService, DIFFICULTY_ACTIONS

def verdict(passed: int, total: int = 3) -> JudgeVerdict:
    return JudgeVerdict(passed_tests=passed, total_tests=total)

class TestDifficulty:
    @pytest.mark.parametrize("label,expected", [
        ("easy", Difficulty.EASY),
        ("Beginner", Difficulty.EASY),
        ("INTERMEDIATE", Difficulty.MEDIUM),
        ("advanced", Difficulty.HARD),
        ("Expert", Difficulty.HARD),
    ])
    def test_aliases(self, label, expected):
        assert Difficulty.parse(label) == expected

    def test_unknown_label(self):
        with pytest.raises(ValueError):
            Difficulty.parse("legendary")

    def test_every_difficulty_has_an_action(self):
        assert set(DIFFICULTY_ACTIONS) == set(Difficulty)

class TestJudgeVerdict:
    def test_status_derived_from_counts(self):
        assert JudgeVerdict(passed_tests=3, total_tests=3).status == SubmissionStatus.PASSED
        assert JudgeVerdict(passed_tests=1, total_tests=3).status == SubmissionStatus.PARTIAL
        assert JudgeVerdict(passed_tests=0, total_tests=3).status == SubmissionStatus.FAILED

    def test_passed_cannot_exceed_total(self):
        with pytest.raises(ValueError):
            JudgeVerdict(passed_tests=4, total_tests=3)

class TestSubmissionService:
    """First pass pays, every attempt is recorded"""

    async def test_first_pass_only_pays_once(self, db_session, user, make_problem, mock_judge):
        problem = await make_problem("two-sum", Difficulty.MEDIUM)
        service = SubmissionService(db_session, mock_judge)

        first = (await service.submit_solution(user.id, problem.id, "print(3)")).data
        second = (await service.submit_solution(user.id, problem.id, "print(1 + 2)")).data

        assert first.solved and first.first_solve
        assert first.xp_awarded == 25
        assert second.solved and not second.first_solve
        assert second.xp_awarded == 0

        count = await db_session.scalar(
            select(func.count(PracticeSubmission.id)).where(PracticeSubmission.user_id == user.id)
        )
        assert count == 2

    async def test_failed_attempts_then_pass(self, db_session, user, make_problem, mock_judge):
        problem = await make_problem("fizz-buzz", Difficulty.HARD)
        service = SubmissionService(db_session, mock_judge)

        mock_judge.judge.return_value = verdict(0)
        failed = (await service.submit_solution(user.id, problem.id, "pass")).data
        mock_judge.judge.return_value = verdict(2)
        partial = (await service.submit_solution(user.id, problem.id, "pass")).data

        assert failed.status == SubmissionStatus.FAILED
        assert partial.status == SubmissionStatus.PARTIAL
        assert failed.xp_awarded == partial.xp_awarded == 0

        state = (await service.get_problem_state(user.id, problem.id)).data
        assert state.state == ProblemState.ATTEMPTED
        assert state.attempts == 2

        mock_judge.judge.return_value = verdict(3)
        passed = (await service.submit_solution(user.id, problem.id, "solution")).data
        assert passed.xp_awarded == 50

        state = (await service.get_problem_state(user.id, problem.id)).data
        assert state.state == ProblemState.SOLVED

    async def test_unattempted(self, db_session, user, make_problem, mock_judge):
        problem = await make_problem()
        state = (await SubmissionService(db_session, mock_judge).get_problem_state(user.id, problem.id)).data
        assert state.state == ProblemState.UNATTEMPTED
        assert state.attempts == 0

    async def test_judge_failure_records_nothing(self, db_session, user, make_problem, mock_judge):
        problem = await make_problem()
        mock_judge.judge.side_effect = JudgeUnavailable()

        with pytest.raises(JudgeUnavailable):
            await SubmissionService(db_session, mock_judge).submit_solution(user.id, problem.id, "x = 1")

        count = await db_session.scalar(select(func.count(PracticeSubmission.id)))
        assert count == 0

    async def test_unknown_problem(self, db_session, user, mock_judge):
        result = await SubmissionService(db_session, mock_judge).submit_solution(user.id, uuid.uuid4(), "x")
        assert result.error_code == ErrorCode.NOT_FOUND
        mock_judge.judge.assert_not_awaited()

    async def test_empty_code(self, db_session, user, make_problem, mock_judge):
        problem = await make_problem()
        result = await SubmissionService(db_session, mock_judge).submit_solution(user.id, problem.id, "   ")
        assert result.error_code == ErrorCode.INVALID_INPUT

    async def test_unauthorized(self, db_session, make_problem, mock_judge):
        problem = await make_problem()
        result = await SubmissionService(db_session, mock_judge).submit_solution(None, problem.id, "x")
        assert result.error_code == ErrorCode.UNAUTHORIZED

    async def test_list_and_stats(self, db_session, user, make_problem, mock_judge):
        easy = await make_problem("easy-one", Difficulty.EASY)
        await make_problem("hard-one", Difficulty.HARD)
        service = SubmissionService(db_session, mock_judge)

        mock_judge.judge.return_value = verdict(1)
        await service.submit_solution(user.id, easy.id, "try")
        mock_judge.judge.return_value = verdict(3)
        await service.submit_solution(user.id, easy.id, "solve")

        items = (await service.list_submissions(user.id, easy.id)).data
        assert len(items) == 2

        stats = (await service.get_practice_stats(user.id)).data
        assert stats.total_problems == 2
        assert stats.solved_problems == 1
        assert stats.total_submissions == 2
        assert stats.success_rate == 50
        assert stats.by_difficulty["EASY"].solved == 1
        assert stats.by_difficulty["HARD"].total == 1
        assert stats.solved_last_week == 1

class TestHttpJudgeClient:
    def test_base_client_is_abstract(self):
        with pytest.raises(TypeError):
            JudgeClient()

        class StubJudge(JudgeClient):
            async def judge(self, problem, code):
                return verdict(1)

        assert isinstance(StubJudge(), JudgeClient)

    async def test_http_error_becomes_unavailable(self, make_problem):
        problem = await make_problem()
        client = HttpJudgeClient("http://judge.invalid")
        client.client = MagicMock()
        client.client.post = AsyncMock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(JudgeUnavailable):
            await client.judge(problem, "print(1)")

    async def test_parses_verdict(self, make_problem):
        problem = await make_problem()
        client = HttpJudgeClient("http://judge.invalid")
        response = MagicMock()
        response.raise_for_status = MagicMock()
        response.json = MagicMock(return_value={"passed_tests": 2, "total_tests": 2})
        client.client = MagicMock()
        client.client.post = AsyncMock(return_value=response)

        result = await client.judge(problem, "print(1)")
        assert result.status == SubmissionStatus.PASSED
