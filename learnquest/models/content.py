# ============================================================================
# Content & Reading Progress Models
# ============================================================================
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy import Enum, UniqueConstraint, CheckConstraint
from sqlalchemy.sql import func
import uuid
import enum
from learnquest.core.database import Base
from learnquest.core.timeutils import utcnow

class ContentType(str, enum.Enum):
    ARTICLE = "ARTICLE"
    TUTORIAL = "TUTORIAL"
    VIDEO = "VIDEO"

class Content(Base):
    """Standalone learning material outside the course tree"""
    __tablename__ = "contents"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    slug = Column(String(200), unique=True, nullable=False)
    content_type = Column(Enum(ContentType, native_enum=False, length=20), nullable=False)
    is_published = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Content {self.content_type} {self.slug}>"

class ContentProgress(Base):
    """
    Reading progress per (user, content). `progress` only moves forward and
    `completed_at` is set once, the first time progress reaches 100.
    """
    __tablename__ = "content_progress"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    content_id = Column(Uuid, ForeignKey("contents.id"), nullable=False)

    progress = Column(Integer, nullable=False, default=0)  # 0-100
    last_position = Column(Integer)  # scroll offset or playback second
    time_spent = Column(Integer, nullable=False, default=0)  # seconds
    started_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)
    completed_at = Column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint("user_id", "content_id", name="uq_content_progress_user_content"),
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_content_progress_range"),
    )

    def __repr__(self):
        return f"<ContentProgress {self.content_id} {self.progress}%>"
