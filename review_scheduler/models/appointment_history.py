"""Appointment history model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from review_scheduler.core.timeutils import utcnow
from review_scheduler.database import Base


class AppointmentHistory(Base):
    """Append-only audit entry written on every lifecycle transition."""
    __tablename__ = "appointment_histories"

    id = Column(Integer, primary_key=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=False, index=True)
    action = Column(String(100), nullable=False)
    actor_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    timestamp = Column(DateTime, nullable=False, default=utcnow)
    notes = Column(Text)
