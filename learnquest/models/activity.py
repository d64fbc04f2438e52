# ============================================================================
# Activity Event Model
# ============================================================================
from sqlalchemy import Column, String, DateTime, ForeignKey, Date, Uuid
from sqlalchemy import Enum, JSON, Index
import uuid
import enum
from learnquest.core.database import Base
from learnquest.core.timeutils import utcnow

class ActivityEventType(str, enum.Enum):
    CONTENT_VIEW = "CONTENT_VIEW"
    LESSON_COMPLETED = "LESSON_COMPLETED"
    SOLUTION_SUBMITTED = "SOLUTION_SUBMITTED"

class ActivityEvent(Base):
    """Write-once event feeding the activity calendar"""
    __tablename__ = "activity_events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    event_type = Column(Enum(ActivityEventType, native_enum=False, length=30), nullable=False)
    target_id = Column(String(120))
    details = Column(JSON)

    occurred_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    activity_date = Column(Date, nullable=False)  # UTC day of occurred_at

    __table_args__ = (
        Index("ix_activity_events_user_date", "user_id", "activity_date"),
    )

    def __repr__(self):
        return f"<ActivityEvent {self.event_type} {self.activity_date}>"
