"""User model definitions."""

from sqlalchemy import Boolean, Column, Integer, String
from review_scheduler.database import Base

ROLE_APPLICANT = "applicant"
ROLE_REVIEWER = "reviewer"


class User(Base):
    """Local projection of a directory account."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False, default="")
    role = Column(String(50), nullable=False, default=ROLE_APPLICANT)  # applicant/reviewer
    is_active = Column(Boolean, nullable=False, default=True)
