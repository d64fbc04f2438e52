# ============================================================================
# Code Execution (Judge) Client
# ============================================================================
from abc import ABC, abstractmethod
import httpx
from typing import Dict
from pydantic import ValidationError
import logging

from learnquest.core.exceptions import JudgeUnavailable
from learnquest.models.practice import PracticeProblem
from learnquest.schemas.progress import JudgeVerdict

logger = logging.getLogger(__name__)

class JudgeClient(ABC):
    """Runs a submission against a problem's test cases"""

    @abstractmethod
    async def judge(self, problem: PracticeProblem, code: str) -> JudgeVerdict:
        ...

    async def close(self) -> None:
        pass

class HttpJudgeClient(JudgeClient):
    """Client for the external code-execution service"""

    def __init__(self, base_url: str, timeout: float = 20.0):
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"}
        )

    async def judge(self, problem: PracticeProblem, code: str) -> JudgeVerdict:
        payload = {
            "problem_id": str(problem.id),
            "language": problem.language,
            "code": code,
            "test_cases": problem.test_cases or [],
        }

        try:
            response = await self.client.post("/judge", json=payload)
            response.raise_for_status()
            data: Dict = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Judge API error for {problem.slug}: {e}")
            raise JudgeUnavailable() from e
        except ValueError as e:
            logger.error(f"Judge returned invalid JSON for {problem.slug}: {e}")
            raise JudgeUnavailable("Code execution service returned an invalid response") from e

        try:
            return JudgeVerdict.model_validate(data)
        except ValidationError as e:
            logger.error(f"Judge verdict rejected for {problem.slug}: {e}")
            raise JudgeUnavailable("Code execution service returned an invalid verdict") from e

    async def close(self) -> None:
        await self.client.aclose()
