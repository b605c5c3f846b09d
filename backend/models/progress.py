"""Chapter progress and certificate model definitions."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from backend.database import Base


def generate_certificate_no() -> str:
    return f"LRN-{uuid.uuid4().hex[:12].upper()}"


class ChapterProgress(Base):
    """One-way completion marker for a student and a chapter."""
    __tablename__ = "chapter_progress"
    __table_args__ = (
        UniqueConstraint("student_id", "chapter_id", name="uq_chapter_progress_student_chapter"),
    )

    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    chapter_id = Column(Integer, ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False, index=True)
    completed_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))


class Certificate(Base):
    """Proof of completion, issued once per student and course."""
    __tablename__ = "certificates"
    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name="uq_certificates_student_course"),
    )

    id = Column(Integer, primary_key=True)
    certificate_no = Column(String, unique=True, nullable=False, default=generate_certificate_no)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    issued_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    student = relationship("User")
    course = relationship("Course")
