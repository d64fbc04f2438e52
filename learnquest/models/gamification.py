# ============================================================================
# Gamification Models
# ============================================================================
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Date, Uuid
from sqlalchemy import Enum, UniqueConstraint, CheckConstraint, Index
from sqlalchemy.sql import func
import uuid
import enum
from learnquest.core.database import Base
from learnquest.core.timeutils import utcnow

class XPAction(str, enum.Enum):
    READ_CONTENT = "READ_CONTENT"
    COMPLETE_CONTENT = "COMPLETE_CONTENT"
    LIKE_CONTENT = "LIKE_CONTENT"
    COMMENT = "COMMENT"
    COMPLETE_LESSON = "COMPLETE_LESSON"
    COMPLETE_SECTION = "COMPLETE_SECTION"
    COMPLETE_COURSE = "COMPLETE_COURSE"
    SOLVE_PROBLEM_EASY = "SOLVE_PROBLEM_EASY"
    SOLVE_PROBLEM_MEDIUM = "SOLVE_PROBLEM_MEDIUM"
    SOLVE_PROBLEM_HARD = "SOLVE_PROBLEM_HARD"
    DAILY_LOGIN = "DAILY_LOGIN"
    DAILY_STREAK_BONUS = "DAILY_STREAK_BONUS"
    WEEKLY_STREAK_BONUS = "WEEKLY_STREAK_BONUS"
    FIRST_OF_TYPE = "FIRST_OF_TYPE"
    ACHIEVEMENT_BONUS = "ACHIEVEMENT_BONUS"

class UserXP(Base):
    """XP ledger, one row per user, created on the first award"""
    __tablename__ = "user_xp"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, unique=True)

    total_xp = Column(Integer, nullable=False, default=0)
    weekly_xp = Column(Integer, nullable=False, default=0)
    monthly_xp = Column(Integer, nullable=False, default=0)
    level = Column(Integer, nullable=False, default=1)

    week_starts_at = Column(DateTime(timezone=True), default=utcnow)
    month_starts_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("total_xp >= 0", name="ck_user_xp_total_non_negative"),
        CheckConstraint("level >= 1", name="ck_user_xp_level_positive"),
        Index("ix_user_xp_total", "total_xp"),
        Index("ix_user_xp_weekly", "weekly_xp"),
        Index("ix_user_xp_monthly", "monthly_xp"),
    )

    def __repr__(self):
        return f"<UserXP {self.total_xp} XP (L{self.level})>"

class XPTransaction(Base):
    """
    One row per XP award. The unique constraint on
    (user_id, action, reference_id) is what makes awards idempotent.
    """
    __tablename__ = "xp_transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    action = Column(Enum(XPAction, native_enum=False, length=40), nullable=False)
    reference_id = Column(String(120), nullable=False)
    amount = Column(Integer, nullable=False)
    description = Column(String(255))
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "action", "reference_id", name="uq_xp_award_once"),
        CheckConstraint("amount > 0", name="ck_xp_transaction_amount_positive"),
        Index("ix_xp_transactions_user_created", "user_id", "created_at"),
    )

    def __repr__(self):
        return f"<XPTransaction {self.action} +{self.amount}>"

class UserStreak(Base):
    __tablename__ = "user_streaks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, unique=True)

    current_streak = Column(Integer, nullable=False, default=0)
    longest_streak = Column(Integer, nullable=False, default=0)
    last_active_date = Column(Date)  # UTC calendar day
    total_active_days = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("longest_streak >= current_streak", name="ck_streak_longest_covers_current"),
    )

    def __repr__(self):
        return f"<UserStreak {self.current_streak} days>"

class UserDailyProgress(Base):
    __tablename__ = "user_daily_progress"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    date = Column(Date, nullable=False)  # UTC calendar day

    xp_earned = Column(Integer, nullable=False, default=0)
    lessons_completed = Column(Integer, nullable=False, default=0)
    problems_solved = Column(Integer, nullable=False, default=0)
    content_completed = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_daily_progress_user_date"),
    )

class DailyGoal(Base):
    __tablename__ = "daily_goals"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, unique=True)
    daily_xp_goal = Column(Integer, nullable=False, default=50)
    reminder_enabled = Column(Boolean, default=False)
    reminder_time = Column(String(5))  # "HH:MM"
    updated_at = Column(DateTime(timezone=True), server_default=func.now())
