"""User model definitions."""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from backend.database import Base


class Role(str, Enum):
    STUDENT = "STUDENT"
    MENTOR = "MENTOR"
    ADMIN = "ADMIN"


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String, nullable=False, default=Role.STUDENT.value)
    approved = Column(Boolean, nullable=False, default=False)  # mentors only
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
