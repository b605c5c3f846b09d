"""Enrollment model definitions."""

from sqlalchemy import Column, ForeignKey, Integer, UniqueConstraint
from backend.database import Base


class Enrollment(Base):
    """Marks a student as a member of a course."""
    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name="uq_enrollments_student_course"),
    )

    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
