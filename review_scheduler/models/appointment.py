"""Appointment model definitions."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Text, Time
from review_scheduler.core.timeutils import utcnow
from review_scheduler.database import Base


class AppointmentStatus:
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    DELEGATED = "delegated"
    DELEGATE_ACCEPTED = "delegate_accepted"
    DELEGATE_REJECTED = "delegate_rejected"
    CANCELLED = "cancelled"

    ALL = (
        PENDING,
        ACCEPTED,
        REJECTED,
        DELEGATED,
        DELEGATE_ACCEPTED,
        DELEGATE_REJECTED,
        CANCELLED,
    )
    # Statuses whose time window no longer blocks the reviewer's calendar.
    NON_OCCUPYING = (REJECTED, CANCELLED)


class Appointment(Base):
    """A review appointment between an applicant and a reviewer."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    applicant_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    date = Column(Date, nullable=False)
    time_start = Column(Time, nullable=False)
    time_end = Column(Time, nullable=False)
    object_name = Column(String(500), nullable=False)
    status = Column(String(50), nullable=False, default=AppointmentStatus.PENDING)
    delegate_reviewer_id = Column(Integer, ForeignKey("users.id"))
    delegate_status = Column(String(50))
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
    cancelled_at = Column(DateTime)
    cancelled_reason = Column(Text)
