# ============================================================================
# Structured Service Results
# ============================================================================
"""
Core services report expected outcomes (unauthorized, not found, not enrolled,
invalid input) as data instead of raising. Only storage failures propagate as
exceptions. The HTTP layer calls `unwrap()` to turn a failed result into the
matching `LearnQuestException`.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

from learnquest.core.exceptions import (
    LearnQuestException, Unauthorized, NotFound, NotEnrolled, InvalidInput
)

T = TypeVar("T")

class ErrorCode(str, Enum):
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    NOT_ENROLLED = "NOT_ENROLLED"
    INVALID_INPUT = "INVALID_INPUT"

_EXCEPTIONS = {
    ErrorCode.UNAUTHORIZED: Unauthorized,
    ErrorCode.NOT_FOUND: NotFound,
    ErrorCode.NOT_ENROLLED: NotEnrolled,
    ErrorCode.INVALID_INPUT: InvalidInput,
}

@dataclass
class ServiceResult(Generic[T]):
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, data: T = None, message: Optional[str] = None) -> "ServiceResult[T]":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error_code: ErrorCode, error: str, data: T = None) -> "ServiceResult[T]":
        return cls(success=False, data=data, error=error, error_code=error_code)

    @classmethod
    def unauthorized(cls, data: T = None) -> "ServiceResult[T]":
        return cls.fail(ErrorCode.UNAUTHORIZED, "Unauthorized", data)

    @classmethod
    def not_found(cls, what: str, data: T = None) -> "ServiceResult[T]":
        return cls.fail(ErrorCode.NOT_FOUND, f"{what} not found", data)

    def unwrap(self) -> T:
        """Return the payload or raise the exception matching the error code"""
        if self.success:
            return self.data
        exc_class = _EXCEPTIONS.get(self.error_code)
        if exc_class is None:
            raise LearnQuestException(self.error or "Operation failed")
        raise exc_class(self.error)
