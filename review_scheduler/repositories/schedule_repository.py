"""Storage access for a reviewer's calendar.

Every query is keyed by ``(reviewer_id, date)``; the scheduling code only sees
model rows or plain :class:`TimeInterval` values returned from here.
"""

from datetime import date, datetime, time
from typing import Iterable

from sqlalchemy.orm import Session

from review_scheduler.models.appointment import Appointment, AppointmentStatus
from review_scheduler.models.appointment_history import AppointmentHistory
from review_scheduler.models.leave_schedule import LeaveSchedule
from review_scheduler.scheduling.intervals import TimeInterval


class ScheduleRepository:
    def __init__(self, db: Session):
        self.db = db

    def list_appointments(
        self,
        reviewer_id: int,
        day: date,
        exclude_statuses: Iterable[str] = AppointmentStatus.NON_OCCUPYING,
        exclude_id: int | None = None,
    ) -> list[Appointment]:
        query = self.db.query(Appointment).filter(
            Appointment.reviewer_id == reviewer_id,
            Appointment.date == day,
        )

        excluded = list(exclude_statuses)
        if excluded:
            query = query.filter(Appointment.status.not_in(excluded))
        if exclude_id is not None:
            query = query.filter(Appointment.id != exclude_id)

        return query.order_by(Appointment.time_start.asc(), Appointment.id.asc()).all()

    def list_leave(self, reviewer_id: int, day: date) -> list[LeaveSchedule]:
        return self.db.query(LeaveSchedule).filter(
            LeaveSchedule.reviewer_id == reviewer_id,
            LeaveSchedule.date == day,
        ).order_by(LeaveSchedule.time_start.asc(), LeaveSchedule.id.asc()).all()

    def occupied_intervals(self, reviewer_id: int, day: date) -> list[TimeInterval]:
        appointments = self.list_appointments(reviewer_id, day)
        leaves = self.list_leave(reviewer_id, day)

        return [
            TimeInterval(row.time_start, row.time_end)
            for row in [*appointments, *leaves]
        ]

    def get_appointment_for_reviewer(self, appointment_id: int, reviewer_id: int) -> Appointment | None:
        return self.db.query(Appointment).filter(
            Appointment.id == appointment_id,
            Appointment.reviewer_id == reviewer_id,
        ).with_for_update().first()

    def insert_appointment(
        self,
        applicant_id: int,
        reviewer_id: int,
        day: date,
        time_start: time,
        time_end: time,
        object_name: str,
        timestamp: datetime,
    ) -> Appointment:
        appointment = Appointment(
            applicant_id=applicant_id,
            reviewer_id=reviewer_id,
            date=day,
            time_start=time_start,
            time_end=time_end,
            object_name=object_name,
            status=AppointmentStatus.PENDING,
            created_by_id=applicant_id,
            created_at=timestamp,
            updated_at=timestamp,
        )
        self.db.add(appointment)
        self.db.flush()
        return appointment

    def update_appointment_status(
        self,
        appointment_id: int,
        reviewer_id: int,
        from_status: str,
        to_status: str,
        timestamp: datetime,
    ) -> bool:
        """Move the appointment from ``from_status`` to ``to_status``; False if it was not in ``from_status``.

        The status guard sits in the UPDATE itself so that concurrent writers
        serialize on the row write, including on stores that ignore FOR UPDATE.
        """
        updated = self.db.query(Appointment).filter(
            Appointment.id == appointment_id,
            Appointment.reviewer_id == reviewer_id,
            Appointment.status == from_status,
        ).update(
            {Appointment.status: to_status, Appointment.updated_at: timestamp},
            synchronize_session=False,
        )
        return updated == 1

    def append_history(
        self,
        appointment_id: int,
        action: str,
        actor_id: int,
        timestamp: datetime,
        notes: str | None = None,
    ) -> AppointmentHistory:
        history = AppointmentHistory(
            appointment_id=appointment_id,
            action=action,
            actor_id=actor_id,
            timestamp=timestamp,
            notes=notes,
        )
        self.db.add(history)
        self.db.flush()
        return history
