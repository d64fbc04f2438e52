# ============================================================================
# Custom Exceptions
# ============================================================================
from typing import Optional

class LearnQuestException(Exception):
    """Base exception for the LearnQuest progress engine"""
    def __init__(
        self,
        detail: str,
        status_code: int = 400,
        error_code: Optional[str] = None
    ):
        self.detail = detail
        self.status_code = status_code
        self.error_code = error_code or "LEARNQUEST_ERROR"
        super().__init__(self.detail)

class Unauthorized(LearnQuestException):
    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(
            detail=detail,
            status_code=401,
            error_code="UNAUTHORIZED"
        )

class NotFound(LearnQuestException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(
            detail=detail,
            status_code=404,
            error_code="NOT_FOUND"
        )

class NotEnrolled(LearnQuestException):
    def __init__(self, detail: str = "Not enrolled in this course"):
        super().__init__(
            detail=detail,
            status_code=409,
            error_code="NOT_ENROLLED"
        )

class InvalidInput(LearnQuestException):
    def __init__(self, detail: str = "Invalid input"):
        super().__init__(
            detail=detail,
            status_code=422,
            error_code="INVALID_INPUT"
        )

class PersistenceFailure(LearnQuestException):
    """Storage failed mid-operation; the transaction was rolled back and the
    request is safe to retry."""
    def __init__(self, detail: str = "Storage temporarily unavailable, please retry"):
        super().__init__(
            detail=detail,
            status_code=503,
            error_code="PERSISTENCE_FAILURE"
        )

class JudgeUnavailable(LearnQuestException):
    def __init__(self, detail: str = "Code execution service unavailable"):
        super().__init__(
            detail=detail,
            status_code=503,
            error_code="JUDGE_UNAVAILABLE"
        )
