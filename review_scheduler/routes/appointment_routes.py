from datetime import date, datetime, time

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from review_scheduler.auth.dependencies import get_current_user
from review_scheduler.models.user import User
from review_scheduler.routes.dependencies import (
    database_unavailable,
    ensure_database_ready,
    failure_to_http,
    get_db,
    get_notifier,
    get_reviewer_cache,
)
from review_scheduler.services.appointment_service import NOT_FOUND_MESSAGE, AppointmentService
from review_scheduler.services.cache import RedisCache
from review_scheduler.services.notifications import Notifier

router = APIRouter(tags=['appointments'])

MAX_REJECT_REASON_LENGTH = 1000


class CreateAppointmentRequest(BaseModel):
    reviewer_id: int
    date: date
    time_start: time
    time_end: time
    object_name: str

    @field_validator('reviewer_id')
    @classmethod
    def validate_reviewer_id(cls, value: int) -> int:
        if value <= 0:
            raise ValueError('Invalid reviewer id.')
        return value

    @field_validator('object_name')
    @classmethod
    def normalize_object_name(cls, value: str) -> str:
        return value.strip()


class RejectAppointmentRequest(BaseModel):
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_REJECT_REASON_LENGTH:
            raise ValueError(f'Reason must be {MAX_REJECT_REASON_LENGTH} characters or fewer.')

        return normalized


class AppointmentResponse(BaseModel):
    id: int
    applicant_id: int
    reviewer_id: int
    date: date
    time_start: time
    time_end: time
    object_name: str
    status: str
    delegate_reviewer_id: int | None = None
    delegate_status: str | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier: Notifier | None = Depends(get_notifier),
    cache: RedisCache = Depends(get_reviewer_cache),
):
    ensure_database_ready()

    try:
        result = AppointmentService(db, notifier=notifier, cache=cache).create(
            applicant_id=current_user.id,
            reviewer_id=data.reviewer_id,
            day=data.date,
            time_start=data.time_start,
            time_end=data.time_end,
            object_name=data.object_name,
        )
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    if not result.ok:
        raise failure_to_http(result.kind, result.error)

    return result.appointment


@router.get('/reviewing', response_model=list[AppointmentResponse])
def list_reviewing_appointments(
    from_date: date | None = Query(default=None),
    to_date: date | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return AppointmentService(db).list_for_reviewer(current_user.id, from_date=from_date, to_date=to_date)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/applied', response_model=list[AppointmentResponse])
def list_applied_appointments(
    from_date: date | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return AppointmentService(db).list_for_applicant(current_user.id, from_date=from_date)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = AppointmentService(db).get(appointment_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    if appointment is None or current_user.id not in (appointment.applicant_id, appointment.reviewer_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_MESSAGE)

    return appointment


@router.post('/{appointment_id}/accept', response_model=AppointmentResponse)
def accept_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier: Notifier | None = Depends(get_notifier),
):
    ensure_database_ready()

    try:
        result = AppointmentService(db, notifier=notifier).accept(appointment_id, current_user.id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    if not result.ok:
        raise failure_to_http(result.kind, result.error)

    return result.appointment


@router.post('/{appointment_id}/reject', response_model=AppointmentResponse)
def reject_appointment(
    appointment_id: int,
    data: RejectAppointmentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier: Notifier | None = Depends(get_notifier),
):
    ensure_database_ready()

    try:
        result = AppointmentService(db, notifier=notifier).reject(appointment_id, current_user.id, data.reason)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    if not result.ok:
        raise failure_to_http(result.kind, result.error)

    return result.appointment
