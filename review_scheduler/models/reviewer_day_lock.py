"""Reviewer/day lock row definitions."""

from sqlalchemy import Column, Date, Integer, UniqueConstraint
from review_scheduler.database import Base


class ReviewerDayLock(Base):
    """One row per reviewer and date, locked while that day's calendar is written."""
    __tablename__ = "reviewer_day_locks"
    __table_args__ = (UniqueConstraint("reviewer_id", "date", name="uq_reviewer_day_locks_reviewer_date"),)

    id = Column(Integer, primary_key=True)
    reviewer_id = Column(Integer, nullable=False)
    date = Column(Date, nullable=False)
    version = Column(Integer, nullable=False, default=0)
