# ============================================================================
# User Model
# ============================================================================
from sqlalchemy import Column, String, Boolean, DateTime, Uuid
from sqlalchemy.sql import func
import uuid
from learnquest.core.database import Base

class User(Base):
    """
    Account row mirrored from the auth service. Owned data (ledger, streak,
    progress, submissions, activity) is removed explicitly by
    `AccountDataService`, never through database cascades.
    """
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    display_name = Column(String(150), nullable=False)
    avatar_url = Column(String(500))
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<User {self.email}>"
