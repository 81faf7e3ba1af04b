"""Conflict detection for a reviewer's calendar on one day."""

import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy.exc import SQLAlchemyError

from review_scheduler.models.appointment import AppointmentStatus
from review_scheduler.repositories.schedule_repository import ScheduleRepository
from review_scheduler.scheduling.intervals import TimeInterval, overlaps

logger = logging.getLogger(__name__)

CONFLICT_APPOINTMENT = 'appointment'
CONFLICT_LEAVE = 'leave'
CONFLICT_ERROR = 'error'

VERIFICATION_FAILED_REASON = 'Unable to verify availability, please try again.'


@dataclass(frozen=True)
class ConflictResult:
    has_conflict: bool
    reason: str | None = None
    kind: str | None = None
    window: TimeInterval | None = None


NO_CONFLICT = ConflictResult(has_conflict=False)


def check_conflict(
    repository: ScheduleRepository,
    reviewer_id: int,
    day: date,
    interval: TimeInterval,
    exclude_appointment_id: int | None = None,
) -> ConflictResult:
    """Report whether ``interval`` collides with the reviewer's occupied time.

    Appointments are checked before leave and the first overlap found is
    reported. A storage failure is reported as a conflict so that nothing is
    booked while occupancy cannot be read.
    """
    try:
        appointments = repository.list_appointments(
            reviewer_id,
            day,
            exclude_statuses=AppointmentStatus.NON_OCCUPYING,
            exclude_id=exclude_appointment_id,
        )
        for appointment in appointments:
            window = TimeInterval(appointment.time_start, appointment.time_end)
            if overlaps(interval, window):
                logger.warning(
                    'Appointment conflict: reviewer=%s date=%s window=%s conflicts_with=%s',
                    reviewer_id, day, interval.label(), appointment.id,
                )
                return ConflictResult(
                    has_conflict=True,
                    reason=f'Time slot conflicts with an existing appointment: {window.label()}',
                    kind=CONFLICT_APPOINTMENT,
                    window=window,
                )

        for leave in repository.list_leave(reviewer_id, day):
            window = TimeInterval(leave.time_start, leave.time_end)
            if overlaps(interval, window):
                logger.warning(
                    'Leave conflict: reviewer=%s date=%s window=%s leave=%s',
                    reviewer_id, day, interval.label(), leave.id,
                )
                return ConflictResult(
                    has_conflict=True,
                    reason=f'Time slot conflicts with reviewer leave: {window.label()}',
                    kind=CONFLICT_LEAVE,
                    window=window,
                )
    except SQLAlchemyError:
        logger.exception('Conflict check failed: reviewer=%s date=%s window=%s', reviewer_id, day, interval.label())
        return ConflictResult(has_conflict=True, reason=VERIFICATION_FAILED_REASON, kind=CONFLICT_ERROR)

    logger.debug('No conflict: reviewer=%s date=%s window=%s', reviewer_id, day, interval.label())
    return NO_CONFLICT
