"""Reviewer leave blocks."""

import logging
from dataclasses import dataclass
from datetime import date, time

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from review_scheduler.core.timeutils import utcnow
from review_scheduler.locking import reviewer_day_lock
from review_scheduler.models.leave_schedule import LeaveSchedule
from review_scheduler.repositories.schedule_repository import ScheduleRepository
from review_scheduler.scheduling.intervals import TimeInterval, overlaps
from review_scheduler.services.appointment_service import (
    CONFLICT_ERROR,
    NOT_FOUND_ERROR,
    VALIDATION_ERROR,
    validate_booking_window,
)

logger = logging.getLogger(__name__)

FORBIDDEN_ERROR = 'forbidden'


@dataclass(frozen=True)
class LeaveResult:
    ok: bool
    leave: LeaveSchedule | None = None
    error: str | None = None
    kind: str | None = None

    @classmethod
    def success(cls, leave: LeaveSchedule | None = None) -> 'LeaveResult':
        return cls(ok=True, leave=leave)

    @classmethod
    def failure(cls, kind: str, error: str) -> 'LeaveResult':
        return cls(ok=False, error=error, kind=kind)


class LeaveService:
    def __init__(self, db: Session):
        self.db = db
        self.repository = ScheduleRepository(db)

    def create(self, reviewer_id: int, day: date, time_start: time, time_end: time, today: date | None = None) -> LeaveResult:
        today = today or date.today()
        if day < today:
            return LeaveResult.failure(VALIDATION_ERROR, 'Leave cannot be scheduled in the past.')

        window_error = validate_booking_window(day, time_start, time_end, subject='Leave')
        if window_error:
            return LeaveResult.failure(VALIDATION_ERROR, window_error)

        interval = TimeInterval(time_start, time_end)

        try:
            with reviewer_day_lock(self.db, reviewer_id, day):
                for existing in self.repository.list_leave(reviewer_id, day):
                    if overlaps(interval, TimeInterval(existing.time_start, existing.time_end)):
                        self.db.rollback()
                        return LeaveResult.failure(CONFLICT_ERROR, 'Leave already scheduled for this time.')

                now = utcnow()
                leave = LeaveSchedule(
                    reviewer_id=reviewer_id,
                    date=day,
                    time_start=time_start,
                    time_end=time_end,
                    created_at=now,
                    updated_at=now,
                )
                self.db.add(leave)
                self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception('Failed to create leave: reviewer=%s date=%s window=%s', reviewer_id, day, interval.label())
            raise

        logger.info('Leave created: id=%s reviewer=%s date=%s window=%s', leave.id, reviewer_id, day, interval.label())
        return LeaveResult.success(leave)

    def get(self, leave_id: int) -> LeaveSchedule | None:
        return self.db.get(LeaveSchedule, leave_id)

    def delete(self, leave_id: int, reviewer_id: int) -> LeaveResult:
        try:
            leave = self.db.get(LeaveSchedule, leave_id)
            if leave is None:
                return LeaveResult.failure(NOT_FOUND_ERROR, 'Leave schedule not found.')
            if leave.reviewer_id != reviewer_id:
                return LeaveResult.failure(FORBIDDEN_ERROR, 'Only the owning reviewer can delete this leave.')

            self.db.delete(leave)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception('Failed to delete leave: id=%s reviewer=%s', leave_id, reviewer_id)
            raise

        logger.info('Leave deleted: id=%s reviewer=%s', leave_id, reviewer_id)
        return LeaveResult.success()

    def list_for_reviewer(
        self,
        reviewer_id: int,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> list[LeaveSchedule]:
        query = self.db.query(LeaveSchedule).filter(LeaveSchedule.reviewer_id == reviewer_id)
        if from_date is not None:
            query = query.filter(LeaveSchedule.date >= from_date)
        if to_date is not None:
            query = query.filter(LeaveSchedule.date <= to_date)
        return query.order_by(LeaveSchedule.date.asc(), LeaveSchedule.time_start.asc()).all()
