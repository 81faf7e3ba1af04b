"""Notification log model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from review_scheduler.core.timeutils import utcnow
from review_scheduler.database import Base

NOTIFICATION_PENDING = "pending"
NOTIFICATION_SENT = "sent"
NOTIFICATION_FAILED = "failed"


class NotificationLog(Base):
    """Delivery record for one notification e-mail."""
    __tablename__ = "notification_logs"

    id = Column(Integer, primary_key=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=False, index=True)
    recipient_email = Column(String(255), nullable=False)
    notification_type = Column(String(100), nullable=False)
    subject = Column(String(500), nullable=False)
    content = Column(Text, nullable=False)
    status = Column(String(50), nullable=False, default=NOTIFICATION_PENDING)
    retry_count = Column(Integer, nullable=False, default=0)
    sent_at = Column(DateTime)
    error_message = Column(Text)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
