# ============================================================================
# Learning Progress Models
# ============================================================================
from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy import UniqueConstraint, CheckConstraint
import uuid
from learnquest.core.database import Base
from learnquest.core.timeutils import utcnow

class LessonProgress(Base):
    """Completion is one-way: `completed` goes False -> True exactly once."""
    __tablename__ = "lesson_progress"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    lesson_id = Column(Uuid, ForeignKey("lessons.id"), nullable=False)

    completed = Column(Boolean, nullable=False, default=False)
    started_at = Column(DateTime(timezone=True), default=utcnow)
    completed_at = Column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint("user_id", "lesson_id", name="uq_lesson_progress_user_lesson"),
    )

    def __repr__(self):
        return f"<LessonProgress {self.lesson_id} ({'done' if self.completed else 'open'})>"

class CourseEnrollment(Base):
    __tablename__ = "course_enrollments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    course_id = Column(Uuid, ForeignKey("courses.id"), nullable=False)

    progress = Column(Integer, nullable=False, default=0)  # 0-100
    current_lesson_id = Column(Uuid, ForeignKey("lessons.id"), nullable=True)
    enrolled_at = Column(DateTime(timezone=True), default=utcnow)
    completed_at = Column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_enrollment_user_course"),
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_enrollment_progress_range"),
    )

    def __repr__(self):
        return f"<CourseEnrollment {self.course_id} {self.progress}%>"
