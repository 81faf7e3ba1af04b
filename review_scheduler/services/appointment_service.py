"""Appointment lifecycle: create, accept and reject.

Expected failures come back as a :class:`LifecycleResult`; storage failures are
logged and re-raised for the calling layer to turn into an internal error.
"""

import logging
from dataclasses import dataclass
from datetime import date, time

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from review_scheduler.core.timeutils import utcnow
from review_scheduler.locking import reviewer_day_lock
from review_scheduler.models.appointment import Appointment, AppointmentStatus
from review_scheduler.repositories.schedule_repository import ScheduleRepository
from review_scheduler.scheduling.conflicts import check_conflict
from review_scheduler.scheduling.intervals import (
    BUSINESS_HOURS,
    SLOT_GRANULARITY_MINUTES,
    TimeInterval,
    contains,
    is_aligned,
)
from review_scheduler.services.cache import REVIEWER_LIST_KEY, RedisCache
from review_scheduler.services.notifications import (
    APPOINTMENT_CONFIRMED,
    APPOINTMENT_REJECTED,
    NEW_APPOINTMENT,
    NotificationRequest,
    Notifier,
    record_unqueued,
)

logger = logging.getLogger(__name__)

VALIDATION_ERROR = 'validation'
CONFLICT_ERROR = 'conflict'
NOT_FOUND_ERROR = 'not_found'
WRONG_STATE_ERROR = 'wrong_state'

MAX_OBJECT_NAME_LENGTH = 500
NOT_FOUND_MESSAGE = 'Appointment not found or you are not authorized to act on it.'


@dataclass(frozen=True)
class LifecycleResult:
    ok: bool
    appointment: Appointment | None = None
    error: str | None = None
    kind: str | None = None
    window: TimeInterval | None = None

    @classmethod
    def success(cls, appointment: Appointment) -> 'LifecycleResult':
        return cls(ok=True, appointment=appointment)

    @classmethod
    def failure(cls, kind: str, error: str, window: TimeInterval | None = None) -> 'LifecycleResult':
        return cls(ok=False, error=error, kind=kind, window=window)


def validate_booking_window(day: date, time_start: time, time_end: time, subject: str = 'Appointments') -> str | None:
    """Shared calendar checks for appointments and leave; returns the first violation."""
    if day.weekday() >= 5:
        return f'{subject} can only be scheduled on weekdays (Monday through Friday).'

    if time_start >= time_end:
        return 'Start time must be earlier than end time.'

    if not is_aligned(time_start) or not is_aligned(time_end):
        return f'Times must be on {SLOT_GRANULARITY_MINUTES}-minute boundaries.'

    if not contains(BUSINESS_HOURS, TimeInterval(time_start, time_end)):
        return f'{subject} must fall within business hours ({BUSINESS_HOURS.label()}).'

    return None


class AppointmentService:
    def __init__(self, db: Session, notifier: Notifier | None = None, cache: RedisCache | None = None):
        self.db = db
        self.repository = ScheduleRepository(db)
        self.notifier = notifier
        self.cache = cache

    def create(
        self,
        applicant_id: int,
        reviewer_id: int,
        day: date,
        time_start: time,
        time_end: time,
        object_name: str,
    ) -> LifecycleResult:
        if applicant_id == reviewer_id:
            return LifecycleResult.failure(VALIDATION_ERROR, 'Applicant and reviewer cannot be the same person.')

        object_name = (object_name or '').strip()
        if not object_name:
            return LifecycleResult.failure(VALIDATION_ERROR, 'Contract object name is required.')
        if len(object_name) > MAX_OBJECT_NAME_LENGTH:
            return LifecycleResult.failure(
                VALIDATION_ERROR,
                f'Contract object name must be {MAX_OBJECT_NAME_LENGTH} characters or fewer.',
            )

        window_error = validate_booking_window(day, time_start, time_end)
        if window_error:
            return LifecycleResult.failure(VALIDATION_ERROR, window_error)

        interval = TimeInterval(time_start, time_end)

        try:
            with reviewer_day_lock(self.db, reviewer_id, day):
                conflict = check_conflict(self.repository, reviewer_id, day, interval)
                if conflict.has_conflict:
                    self.db.rollback()
                    return LifecycleResult.failure(CONFLICT_ERROR, conflict.reason, window=conflict.window)

                now = utcnow()
                appointment = self.repository.insert_appointment(
                    applicant_id=applicant_id,
                    reviewer_id=reviewer_id,
                    day=day,
                    time_start=time_start,
                    time_end=time_end,
                    object_name=object_name,
                    timestamp=now,
                )
                self.repository.append_history(
                    appointment.id,
                    'created',
                    applicant_id,
                    now,
                    'Applicant created the appointment.',
                )
                self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(
                'Failed to create appointment: applicant=%s reviewer=%s date=%s window=%s',
                applicant_id, reviewer_id, day, interval.label(),
            )
            raise

        if self.cache is not None:
            self.cache.remove(REVIEWER_LIST_KEY)
        self._notify(NotificationRequest(appointment.id, NEW_APPOINTMENT))

        logger.info(
            'Appointment created: id=%s applicant=%s reviewer=%s date=%s window=%s',
            appointment.id, applicant_id, reviewer_id, day, interval.label(),
        )
        return LifecycleResult.success(appointment)

    def accept(self, appointment_id: int, reviewer_id: int) -> LifecycleResult:
        return self._decide(
            appointment_id,
            reviewer_id,
            target_status=AppointmentStatus.ACCEPTED,
            notes='Reviewer accepted the appointment.',
            notification=NotificationRequest(appointment_id, APPOINTMENT_CONFIRMED),
        )

    def reject(self, appointment_id: int, reviewer_id: int, reason: str | None = None) -> LifecycleResult:
        reason = (reason or '').strip()
        return self._decide(
            appointment_id,
            reviewer_id,
            target_status=AppointmentStatus.REJECTED,
            notes=f'Reviewer rejected the appointment: {reason}' if reason else 'Reviewer rejected the appointment.',
            notification=NotificationRequest(appointment_id, APPOINTMENT_REJECTED, reason=reason or None),
        )

    def _decide(
        self,
        appointment_id: int,
        reviewer_id: int,
        target_status: str,
        notes: str,
        notification: NotificationRequest,
    ) -> LifecycleResult:
        try:
            appointment = self.repository.get_appointment_for_reviewer(appointment_id, reviewer_id)
            if appointment is None:
                self.db.rollback()
                return LifecycleResult.failure(NOT_FOUND_ERROR, NOT_FOUND_MESSAGE)

            if appointment.status != AppointmentStatus.PENDING:
                current_status = appointment.status
                self.db.rollback()
                return LifecycleResult.failure(
                    WRONG_STATE_ERROR,
                    f'Only pending appointments can be {target_status} (current status: {current_status}).',
                )

            now = utcnow()
            if not self.repository.update_appointment_status(
                appointment_id, reviewer_id, AppointmentStatus.PENDING, target_status, now,
            ):
                # Another decision was committed after the read above.
                self.db.rollback()
                return LifecycleResult.failure(
                    WRONG_STATE_ERROR,
                    f'Only pending appointments can be {target_status} (current status: {appointment.status}).',
                )

            self.repository.append_history(appointment_id, target_status, reviewer_id, now, notes)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(
                'Failed to mark appointment %s: id=%s reviewer=%s',
                target_status, appointment_id, reviewer_id,
            )
            raise

        self._notify(notification)

        logger.info('Appointment %s: id=%s reviewer=%s', target_status, appointment_id, reviewer_id)
        return LifecycleResult.success(appointment)

    def _notify(self, request: NotificationRequest) -> None:
        if self.notifier is None:
            return
        if self.notifier.enqueue(request):
            return

        logger.warning(
            'Notification not queued: appointment=%s type=%s',
            request.appointment_id, request.notification_type,
        )
        try:
            record_unqueued(self.db, request, 'Notification could not be queued.')
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception('Failed to record unqueued notification: appointment=%s', request.appointment_id)

    def get(self, appointment_id: int) -> Appointment | None:
        return self.db.get(Appointment, appointment_id)

    def list_for_reviewer(
        self,
        reviewer_id: int,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> list[Appointment]:
        query = self.db.query(Appointment).filter(Appointment.reviewer_id == reviewer_id)
        if from_date is not None:
            query = query.filter(Appointment.date >= from_date)
        if to_date is not None:
            query = query.filter(Appointment.date <= to_date)
        return query.order_by(Appointment.date.asc(), Appointment.time_start.asc()).all()

    def list_for_applicant(self, applicant_id: int, from_date: date | None = None) -> list[Appointment]:
        query = self.db.query(Appointment).filter(Appointment.applicant_id == applicant_id)
        if from_date is not None:
            query = query.filter(Appointment.date >= from_date)
        return query.order_by(Appointment.date.asc(), Appointment.time_start.asc()).all()
