"""Appointment e-mail notifications.

Lifecycle operations hand a :class:`NotificationRequest` to a notifier and
return immediately. :class:`ArqNotifier` turns it into an arq job; the worker
(``review_scheduler.worker``) renders the message, records it in
``notification_logs`` and sends it through :class:`NotificationDelivery`,
which asks arq to retry failed sends with exponential backoff.
"""

import asyncio
import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.mime.text import MIMEText
from typing import Callable, Protocol

from arq import create_pool
from arq.connections import RedisSettings
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from review_scheduler.core import config
from review_scheduler.core.redis_client import get_redis_settings
from review_scheduler.core.timeutils import utcnow
from review_scheduler.models.appointment import Appointment
from review_scheduler.models.notification_log import (
    NOTIFICATION_FAILED,
    NOTIFICATION_PENDING,
    NOTIFICATION_SENT,
    NotificationLog,
)
from review_scheduler.models.user import User
from review_scheduler.scheduling.intervals import TimeInterval

logger = logging.getLogger(__name__)

NEW_APPOINTMENT = 'new_appointment'
APPOINTMENT_CONFIRMED = 'appointment_confirmed'
APPOINTMENT_REJECTED = 'appointment_rejected'

DELIVER_NOTIFICATION_TASK = 'deliver_notification_task'


class NotificationDeliveryError(Exception):
    """Raised by a sender when a message could not be handed to the mail server."""


class EmailSender(Protocol):
    def send(self, to_address: str, subject: str, body: str) -> None: ...


class Notifier(Protocol):
    def enqueue(self, request: 'NotificationRequest') -> bool: ...


@dataclass(frozen=True)
class NotificationRequest:
    appointment_id: int
    notification_type: str
    reason: str | None = None

    @property
    def job_id(self) -> str:
        # Each appointment sends each notification type at most once.
        return f'notification:{self.appointment_id}:{self.notification_type}'


@dataclass(frozen=True)
class RenderedNotification:
    recipient_email: str
    subject: str
    content: str


class SmtpEmailSender:
    def __init__(
        self,
        host: str = config.SMTP_SERVER,
        port: int = config.SMTP_PORT,
        username: str = config.SMTP_USERNAME,
        password: str = config.SMTP_PASSWORD,
        use_tls: bool = config.SMTP_USE_TLS,
        from_address: str = config.EMAIL_FROM_ADDRESS,
        from_name: str = config.EMAIL_FROM_NAME,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_address = from_address
        self.from_name = from_name

    def send(self, to_address: str, subject: str, body: str) -> None:
        if not to_address:
            raise NotificationDeliveryError('Recipient address is empty.')

        message = MIMEText(body, 'plain', 'utf-8')
        message['Subject'] = subject
        message['From'] = f'{self.from_name} <{self.from_address}>'
        message['To'] = to_address

        try:
            with smtplib.SMTP(self.host, self.port, timeout=30) as server:
                if self.use_tls:
                    server.starttls(context=ssl.create_default_context())
                if self.username:
                    server.login(self.username, self.password)
                server.sendmail(self.from_address, [to_address], message.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationDeliveryError(str(exc)) from exc

        logger.info('E-mail sent: to=%s subject=%s', to_address, subject)


def render_notification(db: Session, appointment: Appointment, request: NotificationRequest) -> RenderedNotification | None:
    window = TimeInterval(appointment.time_start, appointment.time_end).label()
    when = f'{appointment.date:%Y-%m-%d} {window}'

    if request.notification_type == NEW_APPOINTMENT:
        recipient = db.get(User, appointment.reviewer_id)
        applicant = db.get(User, appointment.applicant_id)
        applicant_name = (applicant.name or applicant.email) if applicant else 'An applicant'
        subject = f'New appointment request - {appointment.object_name}'
        content = (
            f'{applicant_name} requested a contract review of "{appointment.object_name}" on {when}.\n'
            'Please accept or reject the request.'
        )
    elif request.notification_type == APPOINTMENT_CONFIRMED:
        recipient = db.get(User, appointment.applicant_id)
        subject = f'Appointment accepted - {appointment.object_name}'
        content = f'Your contract review of "{appointment.object_name}" on {when} has been accepted.'
    elif request.notification_type == APPOINTMENT_REJECTED:
        recipient = db.get(User, appointment.applicant_id)
        subject = f'Appointment rejected - {appointment.object_name}'
        content = (
            f'Your contract review of "{appointment.object_name}" on {when} has been rejected.\n'
            f'Reason: {request.reason or "not given"}'
        )
    else:
        raise ValueError(f'Unknown notification type: {request.notification_type}')

    if recipient is None or not recipient.email:
        return None

    return RenderedNotification(recipient_email=recipient.email, subject=subject, content=content)


def _new_log(appointment: Appointment, request: NotificationRequest, rendered: RenderedNotification, status: str) -> NotificationLog:
    now = utcnow()
    return NotificationLog(
        appointment_id=appointment.id,
        recipient_email=rendered.recipient_email,
        notification_type=request.notification_type,
        subject=rendered.subject,
        content=rendered.content,
        status=status,
        retry_count=0,
        created_at=now,
        updated_at=now,
    )


def record_unqueued(db: Session, request: NotificationRequest, error: str) -> NotificationLog | None:
    """Store a ``failed`` log for a notification that never reached the queue."""
    appointment = db.get(Appointment, request.appointment_id)
    if appointment is None:
        return None

    rendered = render_notification(db, appointment, request)
    if rendered is None:
        return None

    log = _new_log(appointment, request, rendered, NOTIFICATION_FAILED)
    log.error_message = error
    db.add(log)
    db.commit()
    return log


class ArqNotifier:
    """Enqueues notification jobs from synchronous request handlers."""

    def __init__(self, redis_settings: RedisSettings | None = None):
        self.redis_settings = redis_settings or get_redis_settings()

    def enqueue(self, request: NotificationRequest) -> bool:
        try:
            asyncio.run(self._enqueue(request))
        except Exception:
            logger.exception(
                'Failed to queue notification: appointment=%s type=%s',
                request.appointment_id, request.notification_type,
            )
            return False
        return True

    async def _enqueue(self, request: NotificationRequest) -> None:
        pool = await create_pool(self.redis_settings)
        try:
            job = await pool.enqueue_job(
                DELIVER_NOTIFICATION_TASK,
                request.appointment_id,
                request.notification_type,
                request.reason,
                _job_id=request.job_id,
            )
        finally:
            await pool.aclose()

        if job is None:
            logger.info('Notification already queued: %s', request.job_id)


class NotificationDelivery:
    """One delivery attempt per call, bookkept in ``notification_logs``.

    The log row for ``(appointment, type)`` is created on the first attempt and
    reused by retries; ``retry_count`` on that row is the retry budget.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        sender: EmailSender,
        max_retries: int = config.NOTIFICATION_MAX_RETRIES,
        retry_delay_seconds: float = config.NOTIFICATION_RETRY_DELAY_SECONDS,
    ):
        self.session_factory = session_factory
        self.sender = sender
        self.max_retries = max_retries
        self.retry_delay_seconds = retry_delay_seconds

    def backoff_delay(self, retry_count: int) -> float:
        return self.retry_delay_seconds * (2 ** (retry_count - 1))

    def _find_log(self, db: Session, request: NotificationRequest) -> NotificationLog | None:
        return db.query(NotificationLog).filter(
            NotificationLog.appointment_id == request.appointment_id,
            NotificationLog.notification_type == request.notification_type,
        ).order_by(NotificationLog.id.desc()).first()

    def deliver(self, request: NotificationRequest) -> float | None:
        """Attempt one send; return the delay before the next attempt, if any."""
        db = self.session_factory()
        try:
            log = self._find_log(db, request)

            if log is not None and log.status != NOTIFICATION_PENDING:
                logger.info('Notification already %s: log=%s', log.status, log.id)
                return None

            if log is None:
                appointment = db.get(Appointment, request.appointment_id)
                if appointment is None:
                    logger.warning('Notification skipped, appointment not found: %s', request.appointment_id)
                    return None

                rendered = render_notification(db, appointment, request)
                if rendered is None:
                    logger.warning(
                        'Notification skipped, no recipient address: appointment=%s type=%s',
                        request.appointment_id, request.notification_type,
                    )
                    return None

                log = _new_log(appointment, request, rendered, NOTIFICATION_PENDING)
                db.add(log)
                db.commit()
                db.refresh(log)

            try:
                self.sender.send(log.recipient_email, log.subject, log.content)
            except NotificationDeliveryError as exc:
                log.error_message = str(exc)
                log.updated_at = utcnow()

                if log.retry_count < self.max_retries:
                    log.retry_count += 1
                    db.commit()
                    delay = self.backoff_delay(log.retry_count)
                    logger.warning(
                        'Notification send failed, retry %s/%s in %ss: log=%s error=%s',
                        log.retry_count, self.max_retries, delay, log.id, exc,
                    )
                    return delay

                log.status = NOTIFICATION_FAILED
                db.commit()
                logger.error('Notification failed permanently: log=%s error=%s', log.id, exc)
                return None

            now = utcnow()
            log.status = NOTIFICATION_SENT
            log.sent_at = now
            log.updated_at = now
            log.error_message = None
            db.commit()
            logger.info(
                'Notification sent: appointment=%s type=%s to=%s',
                log.appointment_id, log.notification_type, log.recipient_email,
            )
            return None
        except SQLAlchemyError:
            db.rollback()
            logger.exception('Notification bookkeeping failed: appointment=%s', request.appointment_id)
            raise
        finally:
            db.close()
