# ============================================================================
# Practice Problem Models
# ============================================================================
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy import Text, Enum, JSON, CheckConstraint, Index
from sqlalchemy.sql import func
from learnquest.core.timeutils import utcnow
import uuid
import enum
from learnquest.core.database import Base

class Difficulty(str, enum.Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"

    @classmethod
    def parse(cls, value) -> "Difficulty":
        """Map a content-authoring label onto the canonical difficulty.

        Raises ValueError for anything not in the alias table.
        """
        if isinstance(value, cls):
            return value
        key = str(value).strip().upper()
        try:
            return DIFFICULTY_ALIASES[key]
        except KeyError:
            raise ValueError(f"Unknown difficulty: {value!r}") from None

DIFFICULTY_ALIASES = {
    "EASY": Difficulty.EASY,
    "BEGINNER": Difficulty.EASY,
    "MEDIUM": Difficulty.MEDIUM,
    "INTERMEDIATE": Difficulty.MEDIUM,
    "HARD": Difficulty.HARD,
    "ADVANCED": Difficulty.HARD,
    "EXPERT": Difficulty.HARD,
}

class SubmissionStatus(str, enum.Enum):
    PASSED = "PASSED"
    FAILED = "FAILED"
    PARTIAL = "PARTIAL"

    @classmethod
    def from_counts(cls, passed_tests: int, total_tests: int) -> "SubmissionStatus":
        if total_tests > 0 and passed_tests == total_tests:
            return cls.PASSED
        if passed_tests > 0:
            return cls.PARTIAL
        return cls.FAILED

class ProblemState(str, enum.Enum):
    UNATTEMPTED = "UNATTEMPTED"
    ATTEMPTED = "ATTEMPTED"
    SOLVED = "SOLVED"

class PracticeProblem(Base):
    __tablename__ = "practice_problems"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    slug = Column(String(200), unique=True, nullable=False)
    description = Column(Text)
    difficulty = Column(Enum(Difficulty, native_enum=False, length=10), nullable=False)
    language = Column(String(30), default="python")
    test_cases = Column(JSON, default=list)  # [{"input": "...", "expected": "..."}]
    is_published = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<PracticeProblem {self.slug} ({self.difficulty})>"

class PracticeSubmission(Base):
    """One row per attempt. Rows are never updated or deduplicated."""
    __tablename__ = "practice_submissions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    problem_id = Column(Uuid, ForeignKey("practice_problems.id"), nullable=False)

    code = Column(Text, nullable=False)
    status = Column(Enum(SubmissionStatus, native_enum=False, length=10), nullable=False)
    passed_tests = Column(Integer, nullable=False, default=0)
    total_tests = Column(Integer, nullable=False, default=0)
    submitted_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("passed_tests >= 0 AND passed_tests <= total_tests", name="ck_submission_test_counts"),
        Index("ix_submissions_user_problem", "user_id", "problem_id"),
    )

    def __repr__(self):
        return f"<PracticeSubmission {self.id} ({self.status})>"
