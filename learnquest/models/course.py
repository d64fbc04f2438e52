# ============================================================================
# Course Catalogue Models
# ============================================================================
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy import Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from learnquest.core.database import Base

class Course(Base):
    __tablename__ = "courses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    slug = Column(String(200), unique=True, nullable=False)
    description = Column(Text)
    difficulty = Column(String(20))
    is_published = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    sections = relationship(
        "CourseSection", back_populates="course", order_by="CourseSection.order_index"
    )

    def __repr__(self):
        return f"<Course {self.title}>"

class CourseSection(Base):
    __tablename__ = "course_sections"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    course_id = Column(Uuid, ForeignKey("courses.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    order_index = Column(Integer, default=0)

    course = relationship("Course", back_populates="sections")
    lessons = relationship(
        "Lesson", back_populates="section", order_by="Lesson.order_index"
    )

    def __repr__(self):
        return f"<CourseSection {self.title}>"

class Lesson(Base):
    __tablename__ = "lessons"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    section_id = Column(Uuid, ForeignKey("course_sections.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    order_index = Column(Integer, default=0)
    duration_minutes = Column(Integer)

    section = relationship("CourseSection", back_populates="lessons")

    def __repr__(self):
        return f"<Lesson {self.title}>"
