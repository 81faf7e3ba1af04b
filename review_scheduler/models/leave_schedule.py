"""Leave schedule model definitions."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Time
from review_scheduler.core.timeutils import utcnow
from review_scheduler.database import Base


class LeaveSchedule(Base):
    """A block of time a reviewer has declared unavailable."""
    __tablename__ = "leave_schedules"

    id = Column(Integer, primary_key=True)
    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    date = Column(Date, nullable=False)
    time_start = Column(Time, nullable=False)
    time_end = Column(Time, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
